import pytest

from krpc.wire import (
    RpcHeader,
    WireError,
    decode_request,
    decode_varint,
    encode_field,
    encode_request,
    encode_varint,
    iter_fields,
)


def test_varint_known_encodings():
    assert encode_varint(0) == b"\x00"
    assert encode_varint(300) == b"\xac\x02"


@pytest.mark.parametrize("value", [0, 1, 127, 128, 16383, 16384, 2**32 - 1, 2**63])
def test_varint_round_trip(value):
    encoded = encode_varint(value)
    assert decode_varint(encoded, 0) == (value, len(encoded))


def test_varint_negative_rejected():
    with pytest.raises(WireError):
        encode_varint(-1)


def test_varint_truncated():
    with pytest.raises(WireError):
        decode_varint(b"\x80\x80", 0)


def test_fields_round_trip():
    data = encode_field(1, "abc") + encode_field(2, 7) + encode_field(3, b"\x00\x01")
    assert list(iter_fields(data)) == [(1, 2, b"abc"), (2, 0, 7), (3, 2, b"\x00\x01")]


def test_header_round_trip():
    header = RpcHeader("UserServiceRpc", "Login", 18)
    assert RpcHeader.from_bytes(header.to_bytes()) == header


def test_empty_header_encodes_to_nothing():
    assert RpcHeader().to_bytes() == b""


def test_request_round_trip():
    frame = encode_request("UserServiceRpc", "Login", b"payload")
    header, args = decode_request(frame)
    assert header == RpcHeader("UserServiceRpc", "Login", len(b"payload"))
    assert args == b"payload"


def test_request_starts_with_header_length():
    frame = encode_request("S", "M", b"xy")
    header_len, pos = decode_varint(frame, 0)
    assert pos + header_len + 2 == len(frame)


def test_request_trailing_bytes_ignored():
    frame = encode_request("S", "M", b"ab") + b"extra"
    assert decode_request(frame)[1] == b"ab"


def test_request_truncated_args():
    frame = encode_request("S", "M", b"abcdef")
    with pytest.raises(WireError):
        decode_request(frame[:-2])


def test_request_truncated_header():
    frame = encode_request("Service", "Method", b"")
    with pytest.raises(WireError):
        decode_request(frame[:3])