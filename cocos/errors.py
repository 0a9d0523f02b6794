"""RPC error types and the mapping of errors to short user-facing messages."""

from __future__ import annotations

import enum
from typing import TextIO

_RED = "\x1b[31m"
_RESET = "\x1b[0m"


class StatusCode(enum.IntEnum):
    """Status codes carried by remote-call errors."""

    OK = 0
    CANCELED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16

    @property
    def label(self) -> str:
        """The CamelCase name used in error text, e.g. ``PermissionDenied``."""
        if self is StatusCode.OK:
            return "OK"
        return "".join(part.capitalize() for part in self.name.split("_"))

    def __str__(self) -> str:
        return self.label


class RPCError(Exception):
    """An error returned by a remote call, with its status code."""

    def __init__(self, code: StatusCode, message: str) -> None:
        self.code = StatusCode(code)
        self.message = message
        super().__init__(f"rpc error: code = {self.code.label} desc = {message}")


class SignatureVerificationError(Exception):
    """The agent could not verify the request signature."""

    def __init__(self, message: str = "signature verification failed") -> None:
        super().__init__(message)


class AgentServiceUnavailableError(Exception):
    """The agent service could not be reached."""

    def __init__(self, message: str = "agent service is unavailable") -> None:
        super().__init__(message)


def _contains(err: BaseException, kind: type[BaseException]) -> bool:
    seen: set[int] = set()
    stack: list[BaseException] = [err]
    while stack:
        current = stack.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        if isinstance(current, kind):
            return True
        for linked in (current.__cause__, current.__context__):
            if linked is not None:
                stack.append(linked)
    return False


def decode_error(err: BaseException) -> BaseException:
    """Replace well-known errors with a short, readable equivalent."""
    if isinstance(err, RPCError):
        if err.code is StatusCode.PERMISSION_DENIED:
            return PermissionError(
                "digital signature verification failed, check the provided public key"
            )
        if err.code is StatusCode.UNAVAILABLE:
            return ConnectionError("agent is unavailable on the current address")
        if err.code is StatusCode.UNKNOWN:
            return err
    if _contains(err, SignatureVerificationError):
        return SignatureVerificationError()
    if _contains(err, AgentServiceUnavailableError):
        return AgentServiceUnavailableError()
    return err


def print_error(out: TextIO, message: str, err: BaseException, verbose: bool = False) -> None:
    """Write ``message`` formatted with ``err`` as one line, red on a terminal.

    ``message`` holds one ``%s`` or ``%v`` placeholder. Unless ``verbose`` is
    set, the error is first shortened with :func:`decode_error`.
    """
    if not verbose:
        err = decode_error(err)
    text = message.replace("%v", "%s") % (err,)
    isatty = getattr(out, "isatty", None)
    if isatty is not None and isatty():
        text = f"{_RED}{text}{_RESET}"
    out.write(text + "\n")