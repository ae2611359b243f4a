import io
import json
from datetime import timedelta

import pytest

from rpcware.ctxlogger import CallContext, Entry, Level, Logger, to_context
from rpcware.options import (
    RFC3339,
    Options,
    default_client_code_to_level,
    default_code_to_level,
    default_decider,
    default_message_producer,
    duration_to_duration_field,
    duration_to_time_millis_field,
    evaluate_client_options,
    evaluate_server_options,
    with_codes,
    with_decider,
    with_duration_field,
    with_levels,
    with_message_producer,
    with_timestamp_format,
)
from rpcware.rpc import Code, StatusError, default_error_to_code


def _lines(buf):
    return [json.loads(line) for line in buf.getvalue().splitlines() if line]


def _ctx(buf, level=Level.DEBUG):
    return to_context(CallContext(), Entry(Logger(out=buf, level=level)))


def test_duration_to_time_millis_field_sub_millisecond():
    key, value = duration_to_time_millis_field(timedelta(microseconds=100))
    assert key == "grpc.time_ms"
    assert isinstance(value, float)
    assert value == pytest.approx(0.1, rel=1e-6)


def test_duration_to_time_millis_field_whole_milliseconds():
    key, value = duration_to_time_millis_field(timedelta(milliseconds=250))
    assert (key, value) == ("grpc.time_ms", 250.0)


def test_duration_to_duration_field():
    d = timedelta(seconds=2)
    assert duration_to_duration_field(d) == ("grpc.duration", d)


def test_default_decider_logs_everything():
    assert default_decider("/svc/Method", None) is True
    assert default_decider("/svc/Method", ValueError("x")) is True


@pytest.mark.parametrize(
    "code, level",
    [
        (Code.OK, Level.INFO),
        (Code.CANCELLED, Level.INFO),
        (Code.UNKNOWN, Level.ERROR),
        (Code.INVALID_ARGUMENT, Level.INFO),
        (Code.DEADLINE_EXCEEDED, Level.WARNING),
        (Code.NOT_FOUND, Level.INFO),
        (Code.ALREADY_EXISTS, Level.INFO),
        (Code.PERMISSION_DENIED, Level.WARNING),
        (Code.UNAUTHENTICATED, Level.INFO),
        (Code.RESOURCE_EXHAUSTED, Level.WARNING),
        (Code.FAILED_PRECONDITION, Level.WARNING),
        (Code.ABORTED, Level.WARNING),
        (Code.OUT_OF_RANGE, Level.WARNING),
        (Code.UNIMPLEMENTED, Level.ERROR),
        (Code.INTERNAL, Level.ERROR),
        (Code.UNAVAILABLE, Level.WARNING),
        (Code.DATA_LOSS, Level.ERROR),
    ],
)
def test_default_code_to_level(code, level):
    assert default_code_to_level(code) == level


@pytest.mark.parametrize(
    "code, level",
    [
        (Code.OK, Level.DEBUG),
        (Code.CANCELLED, Level.DEBUG),
        (Code.UNKNOWN, Level.INFO),
        (Code.INVALID_ARGUMENT, Level.DEBUG),
        (Code.DEADLINE_EXCEEDED, Level.INFO),
        (Code.NOT_FOUND, Level.DEBUG),
        (Code.ALREADY_EXISTS, Level.DEBUG),
        (Code.PERMISSION_DENIED, Level.INFO),
        (Code.UNAUTHENTICATED, Level.INFO),
        (Code.RESOURCE_EXHAUSTED, Level.DEBUG),
        (Code.FAILED_PRECONDITION, Level.DEBUG),
        (Code.ABORTED, Level.DEBUG),
        (Code.OUT_OF_RANGE, Level.DEBUG),
        (Code.UNIMPLEMENTED, Level.WARNING),
        (Code.INTERNAL, Level.WARNING),
        (Code.UNAVAILABLE, Level.WARNING),
        (Code.DATA_LOSS, Level.WARNING),
    ],
)
def test_default_client_code_to_level(code, level):
    assert default_client_code_to_level(code) == level


def test_server_options_defaults():
    options = evaluate_server_options([])
    assert options.level_func is default_code_to_level
    assert options.should_log is default_decider
    assert options.code_func is default_error_to_code
    assert options.duration_func is duration_to_time_millis_field
    assert options.message_func is default_message_producer
    assert options.timestamp_format == RFC3339


def test_client_options_use_client_levels():
    options = evaluate_client_options([])
    assert options.level_func is default_client_code_to_level
    assert options.level_func(Code.OK) == Level.DEBUG


def test_options_overrides_apply():
    def decider(method, err):
        return False

    def levels(code):
        return Level.ERROR

    def codes(err):
        return Code.INTERNAL

    def producer(ctx, msg, level, code, err, fields):
        return None

    options = evaluate_server_options(
        [
            with_decider(decider),
            with_levels(levels),
            with_codes(codes),
            with_duration_field(duration_to_duration_field),
            with_message_producer(producer),
            with_timestamp_format("%Y-%m-%d"),
        ]
    )
    assert options.should_log is decider
    assert options.level_func is levels
    assert options.code_func is codes
    assert options.duration_func is duration_to_duration_field
    assert options.message_func is producer
    assert options.timestamp_format == "%Y-%m-%d"


def test_client_levels_override_wins():
    def custom(code):
        if code == Code.UNAUTHENTICATED:
            return Level.ERROR
        return default_client_code_to_level(code)

    options = evaluate_client_options([with_levels(custom)])
    assert options.level_func(Code.UNAUTHENTICATED) == Level.ERROR
    assert options.level_func(Code.INTERNAL) == Level.WARNING


def test_evaluation_does_not_leak_between_calls():
    evaluate_server_options([with_timestamp_format("%Y")])
    assert evaluate_server_options([]).timestamp_format == RFC3339
    assert Options().timestamp_format == RFC3339


def test_default_message_producer_writes_line():
    buf = io.StringIO()
    ctx = _ctx(buf)
    default_message_producer(
        ctx, "finished", Level.INFO, Code.OK, None, {"grpc.code": "OK", "grpc.time_ms": 1.5}
    )
    (line,) = _lines(buf)
    assert line["msg"] == "finished"
    assert line["level"] == "info"
    assert line["grpc.code"] == "OK"
    assert line["grpc.time_ms"] == 1.5
    assert "error" not in line


def test_default_message_producer_adds_error_field():
    buf = io.StringIO()
    ctx = _ctx(buf)
    fields = {"grpc.code": "NotFound"}
    err = StatusError(Code.NOT_FOUND, "missing")
    default_message_producer(ctx, "done", Level.WARNING, Code.NOT_FOUND, err, fields)
    assert fields["error"] is err
    (line,) = _lines(buf)
    assert line["level"] == "warning"
    assert line["error"] == "rpc error: code = NotFound desc = missing"


def test_default_message_producer_includes_context_tags():
    buf = io.StringIO()
    ctx = _ctx(buf)
    ctx.tags["custom_tags.string"] = "something"
    default_message_producer(ctx, "done", Level.ERROR, Code.INTERNAL, None, {})
    (line,) = _lines(buf)
    assert line["custom_tags.string"] == "something"
    assert line["level"] == "error"


def test_default_message_producer_respects_logger_level():
    buf = io.StringIO()
    ctx = _ctx(buf, level=Level.INFO)
    default_message_producer(ctx, "quiet", Level.DEBUG, Code.OK, None, {})
    assert buf.getvalue() == ""


def test_default_message_producer_ignores_trace():
    buf = io.StringIO()
    ctx = _ctx(buf, level=Level.TRACE)
    default_message_producer(ctx, "trace", Level.TRACE, Code.OK, None, {})
    assert buf.getvalue() == ""


def test_default_message_producer_panic_raises():
    buf = io.StringIO()
    ctx = _ctx(buf)
    with pytest.raises(RuntimeError, match="boom"):
        default_message_producer(ctx, "boom", Level.PANIC, Code.INTERNAL, None, {})
    assert _lines(buf)[0]["msg"] == "boom"