"""Core call types shared by the interceptors: status codes, errors and call info."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Iterable


class Code(IntEnum):
    """Status codes of a remote procedure call."""

    OK = 0
    CANCELLED = 1
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

    def __str__(self) -> str:
        return _CODE_NAMES[self]

    def __format__(self, spec: str) -> str:
        return format(str(self), spec)


_CODE_NAMES = {
    Code.OK: "OK",
    Code.CANCELLED: "Canceled",
    Code.UNKNOWN: "Unknown",
    Code.INVALID_ARGUMENT: "InvalidArgument",
    Code.DEADLINE_EXCEEDED: "DeadlineExceeded",
    Code.NOT_FOUND: "NotFound",
    Code.ALREADY_EXISTS: "AlreadyExists",
    Code.PERMISSION_DENIED: "PermissionDenied",
    Code.RESOURCE_EXHAUSTED: "ResourceExhausted",
    Code.FAILED_PRECONDITION: "FailedPrecondition",
    Code.ABORTED: "Aborted",
    Code.OUT_OF_RANGE: "OutOfRange",
    Code.UNIMPLEMENTED: "Unimplemented",
    Code.INTERNAL: "Internal",
    Code.UNAVAILABLE: "Unavailable",
    Code.DATA_LOSS: "DataLoss",
    Code.UNAUTHENTICATED: "Unauthenticated",
}


class StatusError(Exception):
    """An error that carries a status code and a description."""

    def __init__(self, code: Code, message: str) -> None:
        self.code = Code(code)
        self.message = message
        super().__init__(f"rpc error: code = {self.code} desc = {message}")


@dataclass
class UnaryServerInfo:
    """Information about a unary call seen by a server interceptor."""

    full_method: str
    server: Any = None


@dataclass
class StreamServerInfo:
    """Information about a streaming call seen by a server interceptor."""

    full_method: str
    is_client_stream: bool = False
    is_server_stream: bool = False


class ServerStream:
    """A server-side stream holding a call context and queued incoming messages."""

    def __init__(self, context: Any = None, incoming: Iterable[Any] = ()) -> None:
        self.context = context
        self._incoming = deque(incoming)
        self.sent: list[Any] = []

    def send_msg(self, message: Any) -> None:
        """Send a message to the peer."""
        self.sent.append(message)

    def recv_msg(self) -> Any:
        """Receive the next message; raise EOFError when the stream is exhausted."""
        try:
            return self._incoming.popleft()
        except IndexError:
            raise EOFError("end of stream") from None


def default_error_to_code(err: BaseException | None) -> Code:
    """Map an error to its status code: None is OK, unknown errors are UNKNOWN."""
    if err is None:
        return Code.OK
    if isinstance(err, StatusError):
        return err.code
    return Code.UNKNOWN