"""Server configuration and coordinated shutdown of running servers."""

from __future__ import annotations

import abc
import logging
import signal
import threading
from collections.abc import Iterable
from dataclasses import dataclass, fields, replace

_STOP_SIGNALS = (signal.SIGINT, signal.SIGABRT)
_POLL_INTERVAL = 0.05


class Server(abc.ABC):
    """A server that can be started and stopped."""

    @abc.abstractmethod
    def start(self) -> None:
        """Run the server until it stops; raise on failure."""

    @abc.abstractmethod
    def stop(self) -> None:
        """Stop the server; raise on failure."""


@dataclass
class BaseConfig:
    """Listening address and TLS material of a server."""

    host: str = "localhost"
    port: str = "7001"
    server_ca_file: str = ""
    cert_file: str = ""
    key_file: str = ""
    client_ca_file: str = ""


@dataclass
class ServerConfig(BaseConfig):
    """Configuration of a plain server."""

    def get_base_config(self) -> "ServerConfig":
        """Return a copy of this configuration."""
        return replace(self)


@dataclass
class AgentConfig(ServerConfig):
    """Configuration of the agent server, which may use attested TLS."""

    attested_tls: bool = False

    def get_base_config(self) -> ServerConfig:
        """Return the plain server part of this configuration."""
        return ServerConfig(**{f.name: getattr(self, f.name) for f in fields(ServerConfig)})


class ServerStopError(Exception):
    """One or more servers failed to stop."""

    def __init__(self, errors: list[BaseException]) -> None:
        self.errors = list(errors)
        joined = " ".join(str(err) for err in self.errors)
        super().__init__(f"encountered errors while stopping servers: [{joined}]")


def stop_all_servers(servers: Iterable[Server]) -> None:
    """Stop every server, then raise :class:`ServerStopError` if any failed."""
    errors: list[BaseException] = []
    for server in servers:
        try:
            server.stop()
        except Exception as exc:  # collect every failure before reporting
            errors.append(exc)
    if errors:
        raise ServerStopError(errors)


def stop_handler(cancel_event: threading.Event, logger: logging.Logger,
                 svc_name: str, *args: Server) -> None:
    """Wait for SIGINT or SIGABRT, or for ``cancel_event`` to be set.

    On a signal, every server in ``args`` is stopped and ``cancel_event`` is
    set; a :class:`ServerStopError` is raised if a server failed to stop.
    Must be called from the main thread.
    """
    received: list[int] = []

    def on_signal(signum, _frame):
        received.append(signum)

    previous = {sig: signal.signal(sig, on_signal) for sig in _STOP_SIGNALS}
    try:
        while not received:
            if cancel_event.wait(_POLL_INTERVAL):
                return
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, signal.SIG_DFL if handler is None else handler)

    sig_name = signal.Signals(received[0]).name
    error: ServerStopError | None = None
    try:
        try:
            stop_all_servers(args)
        except ServerStopError as exc:
            error = exc
            logger.error("%s service error during shutdown: %s", svc_name, exc)
        logger.info("%s service shutdown by signal: %s", svc_name, sig_name)
    finally:
        cancel_event.set()
    if error is not None:
        raise error