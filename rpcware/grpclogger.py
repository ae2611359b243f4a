"""Adapters that let a structured logger serve as the RPC library's own logger."""

from __future__ import annotations

from typing import Any

from .ctxlogger import Entry, Level
from .server_interceptors import SYSTEM_FIELD
from .settable import SettableLogger, set_grpc_logger


def _sprint(args: tuple[Any, ...]) -> str:
    """Join operands, adding a space only between two operands that are not strings."""
    parts: list[str] = []
    previous: Any = None
    for index, arg in enumerate(args):
        if index > 0 and not isinstance(arg, str) and not isinstance(previous, str):
            parts.append(" ")
        parts.append(str(arg))
        previous = arg
    return "".join(parts)


def _sprintf(fmt: str, args: tuple[Any, ...]) -> str:
    return fmt % args if args else fmt


class VerbosityGrpcLogger:
    """A library logger backed by an entry, with a numeric verbosity threshold."""

    def __init__(self, entry: Entry, verbosity: int = 0) -> None:
        self.entry = entry
        self.verbosity = verbosity

    def info(self, *args: Any) -> None:
        self.entry.info(_sprint(args))

    def infoln(self, *args: Any) -> None:
        self.entry.info(_sprint(args))

    def infof(self, fmt: str, *args: Any) -> None:
        self.entry.info(_sprintf(fmt, args))

    def warning(self, *args: Any) -> None:
        self.entry.warning(_sprint(args))

    def warningln(self, *args: Any) -> None:
        self.entry.warning(_sprint(args))

    def warningf(self, fmt: str, *args: Any) -> None:
        self.entry.warning(_sprintf(fmt, args))

    def error(self, *args: Any) -> None:
        self.entry.error(_sprint(args))

    def errorln(self, *args: Any) -> None:
        self.entry.error(_sprint(args))

    def errorf(self, fmt: str, *args: Any) -> None:
        self.entry.error(_sprintf(fmt, args))

    def fatal(self, *args: Any) -> None:
        self.entry.log(Level.FATAL, _sprint(args))

    def fatalln(self, *args: Any) -> None:
        self.entry.log(Level.FATAL, _sprint(args))

    def fatalf(self, fmt: str, *args: Any) -> None:
        self.entry.log(Level.FATAL, _sprintf(fmt, args))

    def v(self, level: int) -> bool:
        """Return True when messages of this verbosity are within the threshold."""
        return level <= self.verbosity


class LevelGrpcLogger(VerbosityGrpcLogger):
    """A library logger whose verbosity check follows the entry logger's level."""

    def __init__(self, entry: Entry) -> None:
        super().__init__(entry, 0)

    def v(self, level: int) -> bool:
        """Return True when the logger has the given level enabled."""
        return self.entry.logger.is_level_enabled(Level(level))


def _grpc_log_entry(entry: Entry) -> Entry:
    return entry.with_fields({SYSTEM_FIELD: "grpc", "grpc_log": True})


def replace_grpc_logger(entry: Entry) -> None:
    """Install the entry as the library logger, with verbosity following its level."""
    set_grpc_logger(LevelGrpcLogger(entry.with_field("system", SYSTEM_FIELD)))


def replace_grpc_logger_v2(entry: Entry) -> None:
    """Install the entry as the library logger at the default verbosity."""
    replace_grpc_logger_v2_with_verbosity(entry, 0)


def replace_grpc_logger_v2_with_verbosity(entry: Entry, verbosity: int) -> None:
    """Install the entry as the library logger; a higher verbosity logs more."""
    set_grpc_logger(VerbosityGrpcLogger(_grpc_log_entry(entry), verbosity))


def set_grpc_logger_v2(settable: SettableLogger, entry: Entry) -> None:
    """Make the settable logger write through the entry at the default verbosity."""
    set_grpc_logger_v2_with_verbosity(settable, entry, 0)


def set_grpc_logger_v2_with_verbosity(settable: SettableLogger, entry: Entry, verbosity: int) -> None:
    """Make the settable logger write through the entry with the given verbosity."""
    settable.set(VerbosityGrpcLogger(_grpc_log_entry(entry), verbosity))