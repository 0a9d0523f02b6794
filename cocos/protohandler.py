"""A logging handler that emits records as JSON agent-log events and queues them."""

from __future__ import annotations

import json
import logging
import queue
from datetime import datetime, timezone
from typing import Any, TextIO

CHUNK_SIZE = 500

_SLOG_BASES = ((-4, "DEBUG"), (0, "INFO"), (4, "WARN"), (8, "ERROR"))


def _level_name(levelno: int) -> str:
    """Name a level the way structured agent logs do, e.g. ``WARN`` or ``ERROR+4``."""
    level = (levelno - logging.INFO) * 2 // 5
    base_value, base_name = _SLOG_BASES[0]
    for value, name in _SLOG_BASES:
        if level >= value:
            base_value, base_name = value, name
    if level < _SLOG_BASES[1][0]:
        base_value, base_name = _SLOG_BASES[0]
    offset = level - base_value
    return base_name if offset == 0 else f"{base_name}{offset:+d}"


def _timestamp(created: float) -> str:
    seconds = int(created // 1)
    nanos = int(round((created - seconds) * 1e9))
    if nanos >= 1_000_000_000:
        seconds += 1
        nanos -= 1_000_000_000
    text = datetime.fromtimestamp(seconds, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")
    if nanos:
        if nanos % 1_000_000 == 0:
            text += f".{nanos // 1_000_000:03d}"
        elif nanos % 1_000 == 0:
            text += f".{nanos // 1_000:06d}"
        else:
            text += f".{nanos:09d}"
    return text + "Z"


class ProtoHandler(logging.Handler):
    """Write each record as JSON agent-log lines and queue it for forwarding.

    Messages longer than 500 characters are split into several events. Each
    event is put on ``queue`` and written to ``stream`` followed by a newline.
    Records below ``level`` (INFO by default) are ignored.
    """

    def __init__(self, stream: TextIO, level: int | None = None,
                 queue: "queue.Queue[dict[str, Any]] | None" = None) -> None:
        super().__init__(logging.INFO if level is None else level)
        self.stream = stream
        self.queue = queue
        self.computation_id = ""

    def emit(self, record: logging.LogRecord) -> None:
        """Queue and write the record; raise ``OSError`` if the stream cannot be written."""
        message = record.getMessage()
        timestamp = _timestamp(record.created)
        level = _level_name(record.levelno)

        for start in range(0, len(message), CHUNK_SIZE):
            agent_log: dict[str, Any] = {
                "timestamp": timestamp,
                "message": message[start:start + CHUNK_SIZE],
                "level": level,
            }
            if self.computation_id:
                agent_log["computationId"] = self.computation_id

            if self.queue is not None:
                self.queue.put({"agentLog": dict(agent_log)})

            line = json.dumps({"agentLog": agent_log}, separators=(",", ":"), ensure_ascii=False)
            self.stream.write(line)
            self.stream.write("\n")

    def with_group(self, name: str) -> "ProtoHandler":
        """Tag later events with computation id ``name`` and return this handler."""
        self.computation_id = name
        return self