"""Client-side logging interceptors.

Each outgoing call is timed, and once it completes one line is logged with the
status code and the duration. The level comes from the client-side code mapping,
which is quieter than the server-side one.
"""

from __future__ import annotations

import time
from datetime import timedelta
from typing import Any, Callable

from .ctxlogger import CallContext, Entry, to_context
from .options import Option, Options, evaluate_client_options
from .server_interceptors import KIND_FIELD, SYSTEM_FIELD, split_method


def client_logger_fields(full_method: str) -> dict[str, Any]:
    """Return the fields that identify a client-side call."""
    service, method = split_method(full_method)
    return {
        SYSTEM_FIELD: "grpc",
        KIND_FIELD: "client",
        "grpc.service": service,
        "grpc.method": method,
    }


def _log_final_client_line(
    options: Options,
    ctx: CallContext,
    started: float,
    err: BaseException | None,
    msg: str,
) -> None:
    code = options.code_func(err)
    level = options.level_func(code)
    dur_key, dur_val = options.duration_func(timedelta(seconds=time.perf_counter() - started))
    fields: dict[str, Any] = {"grpc.code": str(code), dur_key: dur_val}
    options.message_func(ctx, msg, level, code, err, fields)


def _call_context(ctx: CallContext | None, entry: Entry, method: str) -> CallContext:
    base = ctx if ctx is not None else CallContext()
    return to_context(base, entry.with_fields(client_logger_fields(method)))


def unary_client_interceptor(entry: Entry, *args: Option) -> Callable[..., Any]:
    """Return a unary client interceptor that logs each finished call."""
    options = evaluate_client_options(args)

    def interceptor(
        ctx: CallContext | None,
        method: str,
        request: Any,
        invoker: Callable[..., Any],
        *call_options: Any,
    ) -> Any:
        started = time.perf_counter()
        try:
            reply = invoker(ctx, method, request, *call_options)
        except Exception as exc:
            _log_final_client_line(
                options, _call_context(ctx, entry, method), started, exc, "finished client unary call"
            )
            raise
        _log_final_client_line(
            options, _call_context(ctx, entry, method), started, None, "finished client unary call"
        )
        return reply

    return interceptor


def stream_client_interceptor(entry: Entry, *args: Option) -> Callable[..., Any]:
    """Return a streaming client interceptor that logs once the stream is established."""
    options = evaluate_client_options(args)

    def interceptor(
        ctx: CallContext | None,
        desc: Any,
        method: str,
        streamer: Callable[..., Any],
        *call_options: Any,
    ) -> Any:
        started = time.perf_counter()
        try:
            client_stream = streamer(ctx, desc, method, *call_options)
        except Exception as exc:
            _log_final_client_line(
                options, _call_context(ctx, entry, method), started, exc, "finished client streaming call"
            )
            raise
        _log_final_client_line(
            options, _call_context(ctx, entry, method), started, None, "finished client streaming call"
        )
        return client_stream

    return interceptor