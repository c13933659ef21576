"""Encoding of RPC request frames and the protobuf wire format they use."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

VARINT = 0
FIXED64 = 1
LENGTH_DELIMITED = 2
FIXED32 = 5


class WireError(ValueError):
    """Raised when bytes cannot be decoded."""


def encode_varint(value: int) -> bytes:
    """Encode a non-negative integer as a base-128 varint."""
    if value < 0:
        raise WireError("varint must not be negative")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_varint(data: bytes, pos: int = 0) -> tuple[int, int]:
    """Decode a varint at ``pos``; return the value and the position after it."""
    result = 0
    shift = 0
    while True:
        if pos >= len(data):
            raise WireError("truncated varint")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, pos
        shift += 7
        if shift >= 70:
            raise WireError("varint too long")


def encode_field(number: int, value) -> bytes:
    """Encode one field: integers as varints, str and bytes length-delimited."""
    if isinstance(value, bool):
        value = int(value)
    if isinstance(value, int):
        if value < 0:
            value += 1 << 64
        return encode_varint(number << 3 | VARINT) + encode_varint(value)
    if isinstance(value, str):
        value = value.encode("utf-8")
    payload = bytes(value)
    return encode_varint(number << 3 | LENGTH_DELIMITED) + encode_varint(len(payload)) + payload


def iter_fields(data: bytes) -> Iterator[tuple[int, int, object]]:
    """Yield ``(field number, wire type, value)`` for each field in ``data``."""
    pos = 0
    while pos < len(data):
        key, pos = decode_varint(data, pos)
        number, wire_type = key >> 3, key & 7
        if number == 0:
            raise WireError("invalid field number 0")
        if wire_type == VARINT:
            value, pos = decode_varint(data, pos)
        elif wire_type in (FIXED64, FIXED32, LENGTH_DELIMITED):
            if wire_type == LENGTH_DELIMITED:
                length, pos = decode_varint(data, pos)
            else:
                length = 8 if wire_type == FIXED64 else 4
            end = pos + length
            if end > len(data):
                raise WireError("truncated field")
            value = bytes(data[pos:end])
            pos = end
        else:
            raise WireError(f"unsupported wire type {wire_type}")
        yield number, wire_type, value


def _text(value) -> str:
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise WireError("invalid utf-8 string") from exc


@dataclass
class RpcHeader:
    """Names the called service and method and the size of the arguments."""

    service_name: str = ""
    method_name: str = ""
    args_size: int = 0

    def to_bytes(self) -> bytes:
        parts = []
        if self.service_name:
            parts.append(encode_field(1, self.service_name))
        if self.method_name:
            parts.append(encode_field(2, self.method_name))
        if self.args_size:
            parts.append(encode_field(3, self.args_size))
        return b"".join(parts)

    @staticmethod
    def from_bytes(data: bytes) -> "RpcHeader":
        header = RpcHeader()
        for number, wire_type, value in iter_fields(data):
            if number == 1 and wire_type == LENGTH_DELIMITED:
                header.service_name = _text(value)
            elif number == 2 and wire_type == LENGTH_DELIMITED:
                header.method_name = _text(value)
            elif number == 3 and wire_type == VARINT:
                header.args_size = value & 0xFFFFFFFF
        return header


def encode_request(service_name: str, method_name: str, args: bytes) -> bytes:
    """Build a request frame: varint header length, header, then arguments."""
    header = RpcHeader(service_name, method_name, len(args)).to_bytes()
    return encode_varint(len(header)) + header + bytes(args)


def decode_request(data: bytes) -> tuple[RpcHeader, bytes]:
    """Split a request frame into its header and argument bytes."""
    header_size, pos = decode_varint(data)
    end = pos + header_size
    if end > len(data):
        raise WireError("rpc header truncated")
    header = RpcHeader.from_bytes(data[pos:end])
    args_end = end + header.args_size
    if args_end > len(data):
        raise WireError("read args error")
    return header, bytes(data[end:args_end])