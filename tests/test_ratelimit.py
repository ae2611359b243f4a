import pytest

from rpcware.ratelimit import (
    Limiter,
    stream_server_interceptor,
    unary_server_interceptor,
)
from rpcware.rpc import Code, StatusError, StreamServerInfo, UnaryServerInfo

ERR_MSG_FAKE = "fake error"
REJECTED = (
    "rpc error: code = ResourceExhausted desc = FakeMethod is rejected by "
    "grpc_ratelimit middleware, please retry later."
)


class PassLimiter:
    def limit(self):
        return False


class FailLimiter:
    def limit(self):
        return True


class CountingLimiter:
    def __init__(self):
        self.calls = 0

    def limit(self):
        self.calls += 1
        return False


def failing_unary_handler(ctx, req):
    raise RuntimeError(ERR_MSG_FAKE)


def failing_stream_handler(srv, stream):
    raise RuntimeError(ERR_MSG_FAKE)


def test_limiter_is_consulted_once_per_call():
    limiter = CountingLimiter()
    assert isinstance(limiter, Limiter)
    unary = unary_server_interceptor(limiter)
    stream = stream_server_interceptor(limiter)
    assert unary(None, "req", UnaryServerInfo("M"), lambda c, r: r) == "req"
    assert limiter.calls == 1
    assert stream("srv", None, StreamServerInfo("M"), lambda s, st: s) == "srv"
    assert limiter.calls == 2


def test_unary_rate_limit_pass():
    interceptor = unary_server_interceptor(PassLimiter())
    info = UnaryServerInfo(full_method="FakeMethod")
    with pytest.raises(RuntimeError, match=ERR_MSG_FAKE):
        interceptor(None, None, info, failing_unary_handler)


def test_unary_rate_limit_fail():
    interceptor = unary_server_interceptor(FailLimiter())
    info = UnaryServerInfo(full_method="FakeMethod")
    with pytest.raises(StatusError) as exc:
        interceptor(None, None, info, failing_unary_handler)
    assert str(exc.value) == REJECTED
    assert exc.value.code is Code.RESOURCE_EXHAUSTED


def test_stream_rate_limit_pass():
    interceptor = stream_server_interceptor(PassLimiter())
    info = StreamServerInfo(full_method="FakeMethod")
    with pytest.raises(RuntimeError, match=ERR_MSG_FAKE):
        interceptor(None, None, info, failing_stream_handler)


def test_stream_rate_limit_fail():
    interceptor = stream_server_interceptor(FailLimiter())
    info = StreamServerInfo(full_method="FakeMethod")
    with pytest.raises(StatusError) as exc:
        interceptor(None, None, info, failing_stream_handler)
    assert str(exc.value) == REJECTED


def test_always_pass_limiter_returns_handler_result():
    limiter = PassLimiter()
    unary = unary_server_interceptor(limiter)
    stream = stream_server_interceptor(limiter)
    assert unary("ctx", "req", UnaryServerInfo("M"), lambda c, r: (c, r)) == ("ctx", "req")
    assert stream("srv", "st", StreamServerInfo("M"), lambda s, st: (s, st)) == ("srv", "st")


def test_rejected_call_does_not_reach_handler():
    calls = []
    interceptor = unary_server_interceptor(FailLimiter())
    with pytest.raises(StatusError):
        interceptor(None, None, UnaryServerInfo("M"), lambda c, r: calls.append(r))
    assert calls == []