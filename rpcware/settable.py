"""A thread-safe process-wide RPC library logger whose implementation can be swapped.

The process logger is installed once; the implementation behind it can later be
replaced from any thread, which suits tests that each want their own logger.
"""

from __future__ import annotations

import sys
import threading
from datetime import datetime
from typing import Any, TextIO


class StreamGrpcLogger:
    """Writes library log lines to text streams, one stream per severity."""

    def __init__(
        self,
        info: TextIO | None = None,
        warning: TextIO | None = None,
        error: TextIO | None = None,
        verbosity: int = 0,
    ) -> None:
        self._streams = {"INFO": info, "WARNING": warning, "ERROR": error, "FATAL": error}
        self.verbosity = verbosity
        self._lock = threading.Lock()

    def _emit(self, severity: str, message: str) -> None:
        stream = self._streams[severity]
        if stream is None:
            return
        stamp = datetime.now().strftime("%Y/%m/%d %H:%M:%S")
        with self._lock:
            stream.write(f"{severity}: {stamp} {message}\n")

    @staticmethod
    def _join(args: tuple[Any, ...]) -> str:
        return " ".join(str(arg) for arg in args)

    def info(self, *args: Any) -> None:
        self._emit("INFO", self._join(args))

    def infoln(self, *args: Any) -> None:
        self._emit("INFO", self._join(args))

    def infof(self, fmt: str, *args: Any) -> None:
        self._emit("INFO", fmt % args)

    def warning(self, *args: Any) -> None:
        self._emit("WARNING", self._join(args))

    def warningln(self, *args: Any) -> None:
        self._emit("WARNING", self._join(args))

    def warningf(self, fmt: str, *args: Any) -> None:
        self._emit("WARNING", fmt % args)

    def error(self, *args: Any) -> None:
        self._emit("ERROR", self._join(args))

    def errorln(self, *args: Any) -> None:
        self._emit("ERROR", self._join(args))

    def errorf(self, fmt: str, *args: Any) -> None:
        self._emit("ERROR", fmt % args)

    def fatal(self, *args: Any) -> None:
        self._emit("FATAL", self._join(args))
        raise SystemExit(1)

    def fatalln(self, *args: Any) -> None:
        self._emit("FATAL", self._join(args))
        raise SystemExit(1)

    def fatalf(self, fmt: str, *args: Any) -> None:
        self._emit("FATAL", fmt % args)
        raise SystemExit(1)

    def v(self, level: int) -> bool:
        return level <= self.verbosity


class SettableLogger:
    """A logger whose underlying implementation can be replaced safely at any time."""

    def __init__(self, logger: Any = None) -> None:
        self._lock = threading.Lock()
        self._log = logger if logger is not None else StreamGrpcLogger()

    def set(self, logger: Any) -> None:
        """Use the given logger as the underlying implementation."""
        with self._lock:
            self._log = logger

    def reset(self) -> None:
        """Use a logger that discards everything."""
        self.set(StreamGrpcLogger())

    def _get(self) -> Any:
        with self._lock:
            return self._log

    def info(self, *args: Any) -> None:
        self._get().info(*args)

    def infoln(self, *args: Any) -> None:
        self._get().infoln(*args)

    def infof(self, fmt: str, *args: Any) -> None:
        self._get().infof(fmt, *args)

    def warning(self, *args: Any) -> None:
        self._get().warning(*args)

    def warningln(self, *args: Any) -> None:
        self._get().warningln(*args)

    def warningf(self, fmt: str, *args: Any) -> None:
        self._get().warningf(fmt, *args)

    def error(self, *args: Any) -> None:
        self._get().error(*args)

    def errorln(self, *args: Any) -> None:
        self._get().errorln(*args)

    def errorf(self, fmt: str, *args: Any) -> None:
        self._get().errorf(fmt, *args)

    def fatal(self, *args: Any) -> None:
        self._get().fatal(*args)

    def fatalln(self, *args: Any) -> None:
        self._get().fatalln(*args)

    def fatalf(self, fmt: str, *args: Any) -> None:
        self._get().fatalf(fmt, *args)

    def v(self, level: int) -> bool:
        return self._get().v(level)


_global_lock = threading.Lock()
_grpc_logger: Any = StreamGrpcLogger(error=sys.stderr)


def set_grpc_logger(logger: Any) -> None:
    """Install the process-wide library logger."""
    global _grpc_logger
    with _global_lock:
        _grpc_logger = logger


def get_grpc_logger() -> Any:
    """Return the process-wide library logger."""
    with _global_lock:
        return _grpc_logger


def replace_grpc_logger_v2() -> SettableLogger:
    """Install a discarding SettableLogger as the library logger and return it."""
    settable = SettableLogger()
    settable.reset()
    set_grpc_logger(settable)
    return settable