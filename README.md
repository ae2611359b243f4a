# rpcware

Interceptors for RPC servers and clients. They provide request rate limiting
and structured, per-call logging with JSON log lines.

An interceptor here is a plain callable. It receives the call context, the
request or stream, some call information and the next handler, and it returns
what the handler returns. Errors travel as exceptions. A handler that fails
with a status raises `rpcware.rpc.StatusError(code, message)`.

## Installation

```
pip install rpcware
```

## Core types (`rpcware.rpc`)

- `Code` holds the status codes. `str(Code.NOT_FOUND)` gives `"NotFound"`.
- `StatusError(code, message)` is the error that carries a code. Its text is
  `rpc error: code = <Code> desc = <message>`.
- `UnaryServerInfo(full_method, server=None)` and
  `StreamServerInfo(full_method, ...)` describe a call to a server interceptor.
- `ServerStream(context, incoming)` is a simple server stream. `send_msg`
  stores what was sent in `.sent`. `recv_msg` pops the queued incoming
  messages and raises `EOFError` once they run out.
- `default_error_to_code(err)` maps errors to codes. `None` gives `OK`, a
  `StatusError` gives its own code, and any other error gives `UNKNOWN`.

## Rate limiting (`rpcware.ratelimit`)

Implement a `Limiter` whose `limit()` returns `True` when a request should be
rejected:

```python
from rpcware.ratelimit import Limiter, unary_server_interceptor, stream_server_interceptor

class AlwaysPass(Limiter):
    def limit(self):
        return False

unary = unary_server_interceptor(AlwaysPass())
stream = stream_server_interceptor(AlwaysPass())
```

A rejected call raises `StatusError` with code `Code.RESOURCE_EXHAUSTED` and
the description `"<full method> is rejected by grpc_ratelimit middleware,
please retry later."`.

## Call-scoped logging (`rpcware.ctxlogger`)

- `Logger(out, level)` writes one JSON object per line to a text stream and
  filters by `Level` (`PANIC` … `TRACE`). If `out` is `None`, it discards
  everything.
- `Entry(logger, data)` pairs a logger with fields. It has `with_fields`,
  `with_field`, `debug`, `info`, `warning`, `error` and `log(level, msg)`.
  `PANIC` raises after logging, and `FATAL` calls the logger's `exit_func`.
- `CallContext(deadline=None, tags=None)` carries the values of one call, an
  optional deadline and a `tags` dict shared by the call.
- `to_context(ctx, entry)` stores an entry in a context.
- `extract(ctx)` returns the entry with the context's tags and added fields
  applied. If the context holds no logger, it returns a discarding entry.
- `add_fields(ctx, fields)` adds fields to the stored logger.
- `debug`, `info`, `warn` and `error(ctx, msg, **fields)` are shorthands.

## Server logging (`rpcware.server_interceptors`)

```python
import sys
from rpcware.ctxlogger import CallContext, Entry, Level, Logger, add_fields, extract
from rpcware.rpc import UnaryServerInfo
from rpcware.server_interceptors import unary_server_interceptor

entry = Entry(Logger(sys.stdout, Level.DEBUG))
intercept = unary_server_interceptor(entry)

def handler(ctx, request):
    ctx.tags["custom_tags.string"] = "something"
    add_fields(ctx, {"custom_field": "custom_value"})
    extract(ctx).info("some ping")
    return request

intercept(CallContext(), "ping", UnaryServerInfo("/pkg.TestService/Ping"), handler)
```

Every line the handler logs through `extract(ctx)` carries these fields:

- `system`
- `span.kind` (`server`)
- `grpc.service`
- `grpc.method`
- `grpc.start_time`
- `grpc.request.deadline`, only when the context has a deadline

When the call finishes, the interceptor logs one more line. Its message is
`finished unary call with code <Code>` (or `finished streaming call ...`) and
it holds `grpc.code`, the duration field and any error.
`stream_server_interceptor` gives the handler a wrapped stream whose
`context` holds the call logger. `server_call_fields(full_method)` returns
the identifying fields.

## Client logging (`rpcware.client_interceptors`)

`unary_client_interceptor(entry, *options)` returns
`interceptor(ctx, method, request, invoker, *call_options)`.
`stream_client_interceptor(entry, *options)` returns
`interceptor(ctx, desc, method, streamer, *call_options)`. Each one logs one
line when the call returns, or, for streams, once the stream has been set up.
The message is `finished client unary call` or
`finished client streaming call`, and `span.kind` is `client`.

## Options (`rpcware.options`)

Pass any of these to the server or client interceptors:

- `with_levels(f)`: code → `Level`. The defaults are `default_code_to_level`
  on the server and `default_client_code_to_level` on the client.
- `with_decider(f)`: `(full_method, err) -> bool`, which decides whether the
  final server line is written.
- `with_codes(f)`: error → `Code`.
- `with_duration_field(f)`: duration → `(key, value)`. The default is
  `duration_to_time_millis_field` (`grpc.time_ms`, milliseconds as a
  single-precision float). `duration_to_duration_field` gives
  `grpc.duration` instead.
- `with_message_producer(f)`: replaces `default_message_producer`.
- `with_timestamp_format(fmt)`: a strftime format. The default is `RFC3339`.

## Payload logging (`rpcware.payload_interceptors`)

`payload_unary_server_interceptor` and `payload_stream_server_interceptor`
take `(entry, decider)`, where the decider is `(ctx, full_method, server)`.
`payload_unary_client_interceptor` and `payload_stream_client_interceptor`
take `(entry, decider)`, where the decider is `(ctx, method)`.

At info level they log protobuf messages under `grpc.request.content` and
`grpc.response.content`. Messages are rendered with the reassignable
`json_pb_marshaller` (by default `google.protobuf.json_format.MessageToDict`).
Values that are not protobuf messages are not logged. Streams are wrapped in
`LoggingServerStream` or `LoggingClientStream`, which log every message sent
and received.

## Library loggers (`rpcware.settable`, `rpcware.grpclogger`)

`rpcware.settable` keeps one process-wide library logger, read with
`get_grpc_logger()` and set with `set_grpc_logger()`. `SettableLogger` is a
thread-safe front whose implementation can be swapped with `set()` or reset
to a discarding `StreamGrpcLogger` with `reset()`.
`replace_grpc_logger_v2()` installs a fresh `SettableLogger` and returns it.

`rpcware.grpclogger` adapts an `Entry` to that interface:

- `VerbosityGrpcLogger` checks `v(level)` against a verbosity threshold.
- `LevelGrpcLogger` checks `v(level)` against the entry logger's level.
- `replace_grpc_logger`, `replace_grpc_logger_v2` and
  `replace_grpc_logger_v2_with_verbosity` install an adapter as the library
  logger.
- `set_grpc_logger_v2` and `set_grpc_logger_v2_with_verbosity` put one behind
  a `SettableLogger`.

## What this package does not do

It has no RPC transport, server or client of its own, and no command-line
tool. The interceptors are callables that you chain into your own call path.
Nothing fills in context tags for you: put them in `CallContext.tags`
yourself.