"""Interceptors that log request and response payloads as structured JSON fields.

Every protobuf message sent or received is logged at info level. The request
goes under `grpc.request.content` and the response under
`grpc.response.content`. Messages that are not protobuf messages are not logged.
The user-supplied decider runs on every call, so it should be cheap.

The server-side interceptors belong *after* the server logging interceptors.
They then reuse the call fields and tags that those interceptors put in the
context. The lines can still go to a separate entry.
"""

from __future__ import annotations

from typing import Any, Callable

from google.protobuf import json_format
from google.protobuf.message import Message

from .client_interceptors import client_logger_fields
from .ctxlogger import CallContext, Entry, Level, extract
from .rpc import ServerStream, StreamServerInfo, UnaryServerInfo
from .server_interceptors import server_call_fields

ServerPayloadLoggingDecider = Callable[["CallContext | None", str, Any], bool]
ClientPayloadLoggingDecider = Callable[["CallContext | None", str], bool]

json_pb_marshaller: Callable[[Message], Any] = json_format.MessageToDict
"""Turns a protobuf message into a JSON-compatible value; may be reassigned."""

REQUEST_KEY = "grpc.request.content"
RESPONSE_KEY = "grpc.response.content"


def _marshal(message: Message) -> Any:
    try:
        return json_pb_marshaller(message)
    except Exception as exc:
        raise ValueError(f"jsonpb serializer failed: {exc}") from exc


def _log_proto_message_as_json(entry: Entry, message: Any, key: str, msg: str) -> None:
    if not isinstance(message, Message):
        return
    if not entry.logger.is_level_enabled(Level.INFO):
        return
    entry.with_field(key, _marshal(message)).info(msg)


def _server_entry(entry: Entry, ctx: CallContext | None, full_method: str) -> Entry:
    tags = ctx.tags if ctx is not None else {}
    return entry.with_fields({**server_call_fields(full_method), **tags, **extract(ctx).data})


class LoggingClientStream:
    """A client stream that logs every message sent and received."""

    def __init__(self, stream: Any, entry: Entry) -> None:
        self._stream = stream
        self.entry = entry

    def send_msg(self, message: Any) -> None:
        """Send a message and log it as the request payload."""
        self._stream.send_msg(message)
        _log_proto_message_as_json(
            self.entry, message, REQUEST_KEY,
            "server request payload logged as grpc.request.content field",
        )

    def recv_msg(self) -> Any:
        """Receive a message and log it as the response payload."""
        message = self._stream.recv_msg()
        _log_proto_message_as_json(
            self.entry, message, RESPONSE_KEY,
            "server response payload logged as grpc.response.content field",
        )
        return message

    def __getattr__(self, name: str) -> Any:
        return getattr(self._stream, name)


class LoggingServerStream:
    """A server stream that logs every message sent and received."""

    def __init__(self, stream: Any, entry: Entry) -> None:
        self._stream = stream
        self.entry = entry

    def send_msg(self, message: Any) -> None:
        """Send a message and log it as the response payload."""
        self._stream.send_msg(message)
        _log_proto_message_as_json(
            self.entry, message, RESPONSE_KEY,
            "server response payload logged as grpc.response.content field",
        )

    def recv_msg(self) -> Any:
        """Receive a message and log it as the request payload."""
        message = self._stream.recv_msg()
        _log_proto_message_as_json(
            self.entry, message, REQUEST_KEY,
            "server request payload logged as grpc.request.content field",
        )
        return message

    def __getattr__(self, name: str) -> Any:
        return getattr(self._stream, name)


def payload_unary_server_interceptor(
    entry: Entry, decider: ServerPayloadLoggingDecider
) -> Callable[..., Any]:
    """Return a unary server interceptor that logs request and response payloads."""

    def interceptor(
        ctx: CallContext | None,
        req: Any,
        info: UnaryServerInfo,
        handler: Callable[[Any, Any], Any],
    ) -> Any:
        if not decider(ctx, info.full_method, info.server):
            return handler(ctx, req)
        log_entry = _server_entry(entry, ctx, info.full_method)
        _log_proto_message_as_json(
            log_entry, req, REQUEST_KEY,
            "server request payload logged as grpc.request.content field",
        )
        resp = handler(ctx, req)
        _log_proto_message_as_json(
            log_entry, resp, RESPONSE_KEY,
            "server response payload logged as grpc.response.content field",
        )
        return resp

    return interceptor


def payload_stream_server_interceptor(
    entry: Entry, decider: ServerPayloadLoggingDecider
) -> Callable[..., Any]:
    """Return a stream server interceptor that logs every streamed payload."""

    def interceptor(
        srv: Any,
        stream: ServerStream,
        info: StreamServerInfo,
        handler: Callable[[Any, Any], Any],
    ) -> Any:
        ctx = stream.context
        if not decider(ctx, info.full_method, srv):
            return handler(srv, stream)
        log_entry = _server_entry(entry, ctx, info.full_method)
        return handler(srv, LoggingServerStream(stream, log_entry))

    return interceptor


def payload_unary_client_interceptor(
    entry: Entry, decider: ClientPayloadLoggingDecider
) -> Callable[..., Any]:
    """Return a unary client interceptor that logs request and reply payloads."""

    def interceptor(
        ctx: CallContext | None,
        method: str,
        request: Any,
        invoker: Callable[..., Any],
        *call_options: Any,
    ) -> Any:
        if not decider(ctx, method):
            return invoker(ctx, method, request, *call_options)
        log_entry = entry.with_fields(client_logger_fields(method))
        _log_proto_message_as_json(
            log_entry, request, REQUEST_KEY,
            "client request payload logged as grpc.request.content",
        )
        reply = invoker(ctx, method, request, *call_options)
        _log_proto_message_as_json(
            log_entry, reply, RESPONSE_KEY,
            "client response payload logged as grpc.response.content",
        )
        return reply

    return interceptor


def payload_stream_client_interceptor(
    entry: Entry, decider: ClientPayloadLoggingDecider
) -> Callable[..., Any]:
    """Return a streaming client interceptor whose stream logs every payload."""

    def interceptor(
        ctx: CallContext | None,
        desc: Any,
        method: str,
        streamer: Callable[..., Any],
        *call_options: Any,
    ) -> Any:
        if not decider(ctx, method):
            return streamer(ctx, desc, method, *call_options)
        log_entry = entry.with_fields(client_logger_fields(method))
        client_stream = streamer(ctx, desc, method, *call_options)
        return LoggingClientStream(client_stream, log_entry)

    return interceptor