import pytest

from rpcware.rpc import (
    Code,
    ServerStream,
    StatusError,
    StreamServerInfo,
    UnaryServerInfo,
    default_error_to_code,
)


def test_code_string_matches_wire_name():
    exhausted = default_error_to_code(StatusError(Code.RESOURCE_EXHAUSTED, "busy"))
    assert str(exhausted) == "ResourceExhausted"
    assert f"{default_error_to_code(None)}" == "OK"


def test_code_names_are_unique():
    names = [str(Code(value)) for value in range(len(Code))]
    assert len(names) == 17
    assert len(set(names)) == len(names)


def test_status_error_message():
    err = StatusError(Code.RESOURCE_EXHAUSTED, "FakeMethod is busy")
    assert str(err) == "rpc error: code = ResourceExhausted desc = FakeMethod is busy"
    assert err.code is Code.RESOURCE_EXHAUSTED
    assert err.message == "FakeMethod is busy"


def test_status_error_accepts_int_code():
    err = StatusError(5, "missing")
    assert err.code is Code.NOT_FOUND


@pytest.mark.parametrize(
    "err, expected",
    [
        (None, Code.OK),
        (StatusError(Code.INTERNAL, "boom"), Code.INTERNAL),
        (ValueError("fake error"), Code.UNKNOWN),
    ],
)
def test_default_error_to_code(err, expected):
    assert default_error_to_code(err) is expected


def test_server_stream_round_trip():
    stream = ServerStream(context="ctx", incoming=["a", "b"])
    assert stream.recv_msg() == "a"
    assert stream.recv_msg() == "b"
    with pytest.raises(EOFError):
        stream.recv_msg()
    stream.send_msg("x")
    stream.send_msg("y")
    assert stream.sent == ["x", "y"]
    assert stream.context == "ctx"


def test_info_holds_method():
    assert UnaryServerInfo(full_method="FakeMethod").full_method == "FakeMethod"
    info = StreamServerInfo(full_method="FakeMethod", is_server_stream=True)
    assert info.is_server_stream is True
    assert info.is_client_stream is False