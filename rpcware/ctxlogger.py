"""A request-scoped structured logger carried in the call context.

The interceptors store a logger in the call context; handler code extracts it to
log with all call fields and context tags attached. Extracting from a context
with no logger yields a logger that discards everything, so it is always safe.
"""

from __future__ import annotations

import json
import sys
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, Callable, Mapping, TextIO


class Level(IntEnum):
    """Log levels; a larger value is more verbose."""

    PANIC = 0
    FATAL = 1
    ERROR = 2
    WARNING = 3
    INFO = 4
    DEBUG = 5
    TRACE = 6

    def __str__(self) -> str:
        return self.name.lower()

    def __format__(self, spec: str) -> str:
        return format(str(self), spec)


_RESERVED_KEYS = ("time", "level", "msg")


def _json_default(obj: Any) -> Any:
    return str(obj)


class Logger:
    """Writes records as JSON lines to a text stream, filtered by level."""

    def __init__(
        self,
        out: TextIO | None = None,
        level: Level = Level.INFO,
        *,
        exit_func: Callable[[int], Any] = sys.exit,
        timestamp_format: str | None = None,
    ) -> None:
        self.out = out
        self.level = level
        self.exit_func = exit_func
        self.timestamp_format = timestamp_format
        self._lock = threading.Lock()

    def is_level_enabled(self, level: Level) -> bool:
        return self.level >= level

    def write(self, level: Level, msg: str, fields: Mapping[str, Any]) -> None:
        """Write one record, regardless of the configured level."""
        if self.out is None:
            return
        record: dict[str, Any] = {}
        for key, value in fields.items():
            record[f"fields.{key}" if key in _RESERVED_KEYS else key] = value
        if self.timestamp_format:
            record["time"] = datetime.now().astimezone().strftime(self.timestamp_format)
        record["level"] = str(level)
        record["msg"] = msg
        line = json.dumps(record, default=_json_default)
        with self._lock:
            self.out.write(line + "\n")


@dataclass
class Entry:
    """A logger paired with a set of fields attached to every record."""

    logger: Logger
    data: dict[str, Any] = field(default_factory=dict)

    def with_fields(self, fields: Mapping[str, Any]) -> Entry:
        return Entry(self.logger, {**self.data, **fields})

    def with_field(self, key: str, value: Any) -> Entry:
        return self.with_fields({key: value})

    def log(self, level: Level, msg: str) -> None:
        """Log at the given level; PANIC raises and FATAL exits after logging."""
        if self.logger.is_level_enabled(level):
            self.logger.write(level, msg, self.data)
        if level == Level.PANIC:
            raise RuntimeError(msg)
        if level == Level.FATAL:
            self.logger.exit_func(1)

    def debug(self, msg: str) -> None:
        self.log(Level.DEBUG, msg)

    def info(self, msg: str) -> None:
        self.log(Level.INFO, msg)

    def warning(self, msg: str) -> None:
        self.log(Level.WARNING, msg)

    def error(self, msg: str) -> None:
        self.log(Level.ERROR, msg)


class CallContext:
    """Per-call values, an optional deadline and the call's shared tags."""

    def __init__(self, deadline: datetime | None = None, tags: dict[str, Any] | None = None) -> None:
        self.deadline = deadline
        self.tags: dict[str, Any] = {} if tags is None else tags
        self._values: dict[Any, Any] = {}

    def with_value(self, key: Any, value: Any) -> CallContext:
        """Return a child context that also carries key -> value."""
        child = CallContext(self.deadline, self.tags)
        child._values = {**self._values, key: value}
        return child

    def value(self, key: Any) -> Any:
        return self._values.get(key)


@dataclass
class _CtxLogger:
    entry: Entry
    fields: dict[str, Any] = field(default_factory=dict)


_CTX_LOGGER_KEY = object()
_NULL_LOGGER = Logger(out=None, level=Level.PANIC)


def _lookup(ctx: CallContext | None) -> _CtxLogger | None:
    if ctx is None:
        return None
    found = ctx.value(_CTX_LOGGER_KEY)
    return found if isinstance(found, _CtxLogger) else None


def to_context(ctx: CallContext, entry: Entry) -> CallContext:
    """Return a new context holding the entry for later extraction."""
    return ctx.with_value(_CTX_LOGGER_KEY, _CtxLogger(entry))


def extract(ctx: CallContext | None) -> Entry:
    """Return the call-scoped entry with the context tags and added fields applied."""
    holder = _lookup(ctx)
    if holder is None:
        return Entry(_NULL_LOGGER)
    return holder.entry.with_fields({**ctx.tags, **holder.fields})


def add_fields(ctx: CallContext | None, fields: Mapping[str, Any]) -> None:
    """Add fields to the logger stored in the context; a no-op without one."""
    holder = _lookup(ctx)
    if holder is not None:
        holder.fields.update(fields)


def debug(ctx: CallContext | None, msg: str, **kwargs: Any) -> None:
    extract(ctx).with_fields(kwargs).debug(msg)


def info(ctx: CallContext | None, msg: str, **kwargs: Any) -> None:
    extract(ctx).with_fields(kwargs).info(msg)


def warn(ctx: CallContext | None, msg: str, **kwargs: Any) -> None:
    extract(ctx).with_fields(kwargs).warning(msg)


def error(ctx: CallContext | None, msg: str, **kwargs: Any) -> None:
    extract(ctx).with_fields(kwargs).error(msg)