"""Server-side logging interceptors.

Each call gets a request-scoped logger placed in its context. Handler code can
extract that logger to log with the call's fields and tags attached. When the
call finishes, one line is logged with the status code and the duration.

Every line carries `system`, `span.kind`, `grpc.service`, `grpc.method` and
`grpc.start_time`. When the call has a deadline, `grpc.request.deadline` is added.
"""

from __future__ import annotations

import posixpath
import re
import time
from datetime import datetime, timedelta
from typing import Any, Callable

from .ctxlogger import CallContext, Entry, extract, to_context
from .options import ERROR_KEY, Option, Options, evaluate_server_options
from .rpc import ServerStream, StreamServerInfo, UnaryServerInfo

SYSTEM_FIELD = "system"
"""Key of the field naming the logging system on every line."""

KIND_FIELD = "span.kind"
"""Key of the field telling server lines from client lines."""


def _clean(path: str) -> str:
    cleaned = posixpath.normpath(path) if path else "."
    return re.sub(r"^/+", "/", cleaned)


def _dir(path: str) -> str:
    return _clean(path[: path.rfind("/") + 1])


def _base(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return stripped[stripped.rfind("/") + 1 :]


def split_method(full_method: str) -> tuple[str, str]:
    """Split `/package.Service/Method` into its service and method names."""
    return _dir(full_method)[1:], _base(full_method)


def server_call_fields(full_method: str) -> dict[str, Any]:
    """Return the fields that identify a server-side call."""
    service, method = split_method(full_method)
    return {
        SYSTEM_FIELD: "grpc",
        KIND_FIELD: "server",
        "grpc.service": service,
        "grpc.method": method,
    }


def _new_logger_for_call(
    ctx: CallContext | None,
    entry: Entry,
    full_method: str,
    start: datetime,
    timestamp_format: str,
) -> CallContext:
    if ctx is None:
        ctx = CallContext()
    fields = server_call_fields(full_method)
    fields["grpc.start_time"] = start.strftime(timestamp_format)
    if ctx.deadline is not None:
        fields["grpc.request.deadline"] = ctx.deadline.strftime(timestamp_format)
    call_log = entry.with_fields(fields).with_fields(extract(ctx).data)
    return to_context(ctx, call_log)


def _finish(
    options: Options,
    ctx: CallContext,
    full_method: str,
    started: float,
    err: BaseException | None,
    kind: str,
) -> None:
    if not options.should_log(full_method, err):
        return
    code = options.code_func(err)
    level = options.level_func(code)
    dur_key, dur_val = options.duration_func(timedelta(seconds=time.perf_counter() - started))
    fields: dict[str, Any] = {"grpc.code": str(code), dur_key: dur_val}
    if err is not None:
        fields[ERROR_KEY] = err
    options.message_func(ctx, f"finished {kind} call with code {code}", level, code, err, fields)


class _WrappedServerStream:
    """A server stream that exposes a replaced call context."""

    def __init__(self, stream: ServerStream, context: CallContext) -> None:
        self._stream = stream
        self.context = context

    def send_msg(self, message: Any) -> None:
        self._stream.send_msg(message)

    def recv_msg(self) -> Any:
        return self._stream.recv_msg()

    def __getattr__(self, name: str) -> Any:
        return getattr(self._stream, name)


def unary_server_interceptor(entry: Entry, *args: Option) -> Callable[..., Any]:
    """Return a unary server interceptor that puts a call logger in the context."""
    options = evaluate_server_options(args)

    def interceptor(
        ctx: CallContext | None,
        req: Any,
        info: UnaryServerInfo,
        handler: Callable[[CallContext, Any], Any],
    ) -> Any:
        started = time.perf_counter()
        new_ctx = _new_logger_for_call(
            ctx, entry, info.full_method, datetime.now().astimezone(), options.timestamp_format
        )
        try:
            resp = handler(new_ctx, req)
        except Exception as exc:
            _finish(options, new_ctx, info.full_method, started, exc, "unary")
            raise
        _finish(options, new_ctx, info.full_method, started, None, "unary")
        return resp

    return interceptor


def stream_server_interceptor(entry: Entry, *args: Option) -> Callable[..., Any]:
    """Return a stream server interceptor that puts a call logger in the stream context."""
    options = evaluate_server_options(args)

    def interceptor(
        srv: Any,
        stream: ServerStream,
        info: StreamServerInfo,
        handler: Callable[[Any, Any], Any],
    ) -> Any:
        started = time.perf_counter()
        new_ctx = _new_logger_for_call(
            stream.context, entry, info.full_method, datetime.now().astimezone(), options.timestamp_format
        )
        wrapped = _WrappedServerStream(stream, new_ctx)
        try:
            result = handler(srv, wrapped)
        except Exception as exc:
            _finish(options, new_ctx, info.full_method, started, exc, "streaming")
            raise
        _finish(options, new_ctx, info.full_method, started, None, "streaming")
        return result

    return interceptor