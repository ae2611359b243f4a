"""Server-side rate limiting interceptors driven by a user supplied limiter."""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable

from .rpc import Code, ServerStream, StatusError, StreamServerInfo, UnaryServerInfo


@runtime_checkable
class Limiter(Protocol):
    """Decides whether a request should be rejected."""

    def limit(self) -> bool:
        """Return True when the current request must be rejected."""


def _rejection(full_method: str) -> StatusError:
    return StatusError(
        Code.RESOURCE_EXHAUSTED,
        f"{full_method} is rejected by grpc_ratelimit middleware, please retry later.",
    )


def unary_server_interceptor(limiter: Limiter) -> Callable[..., Any]:
    """Return a unary server interceptor that rejects calls the limiter refuses."""

    def interceptor(
        ctx: Any,
        req: Any,
        info: UnaryServerInfo,
        handler: Callable[[Any, Any], Any],
    ) -> Any:
        if limiter.limit():
            raise _rejection(info.full_method)
        return handler(ctx, req)

    return interceptor


def stream_server_interceptor(limiter: Limiter) -> Callable[..., Any]:
    """Return a stream server interceptor that rejects calls the limiter refuses."""

    def interceptor(
        srv: Any,
        stream: ServerStream,
        info: StreamServerInfo,
        handler: Callable[[Any, ServerStream], Any],
    ) -> Any:
        if limiter.limit():
            raise _rejection(info.full_method)
        return handler(srv, stream)

    return interceptor