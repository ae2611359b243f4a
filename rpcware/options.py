"""Options that shape how the logging interceptors decide, classify and record calls."""

from __future__ import annotations

import dataclasses
import struct
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Iterable, MutableMapping

from .ctxlogger import CallContext, Level, extract
from .rpc import Code, default_error_to_code

RFC3339 = "%Y-%m-%dT%H:%M:%S%z"
"""Default strftime format for timestamps emitted in log fields."""

ERROR_KEY = "error"

Decider = Callable[[str, "BaseException | None"], bool]
ErrorToCode = Callable[["BaseException | None"], Code]
CodeToLevel = Callable[[Code], Level]
DurationToField = Callable[[timedelta], "tuple[str, Any]"]
MessageProducer = Callable[
    ["CallContext | None", str, Level, Code, "BaseException | None", "MutableMapping[str, Any]"],
    None,
]
Option = Callable[["Options"], None]


def default_decider(full_method: str, err: BaseException | None) -> bool:
    """Log every call."""
    return True


_SERVER_LEVELS = {
    Code.OK: Level.INFO,
    Code.CANCELLED: Level.INFO,
    Code.UNKNOWN: Level.ERROR,
    Code.INVALID_ARGUMENT: Level.INFO,
    Code.DEADLINE_EXCEEDED: Level.WARNING,
    Code.NOT_FOUND: Level.INFO,
    Code.ALREADY_EXISTS: Level.INFO,
    Code.PERMISSION_DENIED: Level.WARNING,
    Code.UNAUTHENTICATED: Level.INFO,  # unauthenticated requests can happen
    Code.RESOURCE_EXHAUSTED: Level.WARNING,
    Code.FAILED_PRECONDITION: Level.WARNING,
    Code.ABORTED: Level.WARNING,
    Code.OUT_OF_RANGE: Level.WARNING,
    Code.UNIMPLEMENTED: Level.ERROR,
    Code.INTERNAL: Level.ERROR,
    Code.UNAVAILABLE: Level.WARNING,
    Code.DATA_LOSS: Level.ERROR,
}

_CLIENT_LEVELS = {
    Code.OK: Level.DEBUG,
    Code.CANCELLED: Level.DEBUG,
    Code.UNKNOWN: Level.INFO,
    Code.INVALID_ARGUMENT: Level.DEBUG,
    Code.DEADLINE_EXCEEDED: Level.INFO,
    Code.NOT_FOUND: Level.DEBUG,
    Code.ALREADY_EXISTS: Level.DEBUG,
    Code.PERMISSION_DENIED: Level.INFO,
    Code.UNAUTHENTICATED: Level.INFO,  # unauthenticated requests can happen
    Code.RESOURCE_EXHAUSTED: Level.DEBUG,
    Code.FAILED_PRECONDITION: Level.DEBUG,
    Code.ABORTED: Level.DEBUG,
    Code.OUT_OF_RANGE: Level.DEBUG,
    Code.UNIMPLEMENTED: Level.WARNING,
    Code.INTERNAL: Level.WARNING,
    Code.UNAVAILABLE: Level.WARNING,
    Code.DATA_LOSS: Level.WARNING,
}


def default_code_to_level(code: Code) -> Level:
    """Map a status code to the server-side log level."""
    return _SERVER_LEVELS.get(code, Level.ERROR)


def default_client_code_to_level(code: Code) -> Level:
    """Map a status code to the client-side log level."""
    return _CLIENT_LEVELS.get(code, Level.INFO)


def _to_float32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def duration_to_time_millis_field(duration: timedelta) -> tuple[str, float]:
    """Express the duration in milliseconds (single precision) under `grpc.time_ms`."""
    micros = duration // timedelta(microseconds=1)
    return "grpc.time_ms", _to_float32(_to_float32(float(micros)) / 1000)


def duration_to_duration_field(duration: timedelta) -> tuple[str, timedelta]:
    """Log the duration value itself under `grpc.duration`."""
    return "grpc.duration", duration


default_duration_to_field = duration_to_time_millis_field


def default_message_producer(
    ctx: CallContext | None,
    msg: str,
    level: Level,
    code: Code,
    err: BaseException | None,
    fields: MutableMapping[str, Any],
) -> None:
    """Log the final line of a call through the logger held in the context."""
    if err is not None:
        fields[ERROR_KEY] = err
    if level == Level.TRACE:
        return
    extract(ctx).with_fields(fields).log(level, msg)


@dataclass
class Options:
    """Settings used by the logging interceptors."""

    level_func: CodeToLevel = default_code_to_level
    should_log: Decider = default_decider
    code_func: ErrorToCode = default_error_to_code
    duration_func: DurationToField = default_duration_to_field
    message_func: MessageProducer = default_message_producer
    timestamp_format: str = RFC3339


def _evaluate(opts: Iterable[Option], level_func: CodeToLevel) -> Options:
    options = dataclasses.replace(Options(), level_func=level_func)
    for opt in opts:
        opt(options)
    return options


def evaluate_server_options(opts: Iterable[Option]) -> Options:
    """Build server-side options from the defaults and the given overrides."""
    return _evaluate(opts, default_code_to_level)


def evaluate_client_options(opts: Iterable[Option]) -> Options:
    """Build client-side options from the defaults and the given overrides."""
    return _evaluate(opts, default_client_code_to_level)


def _setter(name: str, value: Any) -> Option:
    def apply(options: Options) -> None:
        setattr(options, name, value)

    return apply


def with_decider(f: Decider) -> Option:
    """Choose whether a finished call is logged."""
    return _setter("should_log", f)


def with_levels(f: CodeToLevel) -> Option:
    """Choose the log level for each status code."""
    return _setter("level_func", f)


def with_codes(f: ErrorToCode) -> Option:
    """Choose how errors map to status codes."""
    return _setter("code_func", f)


def with_duration_field(f: DurationToField) -> Option:
    """Choose how the call duration becomes a log field."""
    return _setter("duration_func", f)


def with_message_producer(f: MessageProducer) -> Option:
    """Choose how the final log line is written."""
    return _setter("message_func", f)


def with_timestamp_format(fmt: str) -> Option:
    """Choose the strftime format of timestamps in log fields."""
    return _setter("timestamp_format", fmt)