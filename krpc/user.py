"""Messages and service interface of the user login service."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field

from .service import Service, rpc_method
from .wire import LENGTH_DELIMITED, VARINT, WireError, encode_field, iter_fields

SERVICE_NAME = "UserServiceRpc"

_INT32_MIN = -(1 << 31)
_INT32_MAX = (1 << 31) - 1


def _text(value: bytes) -> str:
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise WireError("invalid utf-8 string") from exc


def _int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


@dataclass
class ResultCode:
    """Outcome of a call: an error code (0 for success) and a message."""

    errcode: int = 0
    errmsg: str = ""

    def to_bytes(self) -> bytes:
        if not _INT32_MIN <= self.errcode <= _INT32_MAX:
            raise ValueError("errcode does not fit in 32 bits")
        parts = []
        if self.errcode:
            parts.append(encode_field(1, self.errcode))
        if self.errmsg:
            parts.append(encode_field(2, self.errmsg))
        return b"".join(parts)

    @staticmethod
    def from_bytes(data: bytes) -> "ResultCode":
        code = ResultCode()
        for number, wire_type, value in iter_fields(data):
            if number == 1 and wire_type == VARINT:
                code.errcode = _int32(value)
            elif number == 2 and wire_type == LENGTH_DELIMITED:
                code.errmsg = _text(value)
        return code


@dataclass
class LoginRequest:
    """A user name and password to log in with."""

    name: str = ""
    pwd: str = ""

    def to_bytes(self) -> bytes:
        parts = []
        if self.name:
            parts.append(encode_field(1, self.name))
        if self.pwd:
            parts.append(encode_field(2, self.pwd))
        return b"".join(parts)

    @staticmethod
    def from_bytes(data: bytes) -> "LoginRequest":
        request = LoginRequest()
        for number, wire_type, value in iter_fields(data):
            if number == 1 and wire_type == LENGTH_DELIMITED:
                request.name = _text(value)
            elif number == 2 and wire_type == LENGTH_DELIMITED:
                request.pwd = _text(value)
        return request


@dataclass
class LoginResponse:
    """The result code of a login and whether it succeeded."""

    result: ResultCode = field(default_factory=ResultCode)
    success: bool = False

    def to_bytes(self) -> bytes:
        parts = [encode_field(1, self.result.to_bytes())]
        if self.success:
            parts.append(encode_field(2, True))
        return b"".join(parts)

    @staticmethod
    def from_bytes(data: bytes) -> "LoginResponse":
        response = LoginResponse()
        for number, wire_type, value in iter_fields(data):
            if number == 1 and wire_type == LENGTH_DELIMITED:
                response.result = ResultCode.from_bytes(value)
            elif number == 2 and wire_type == VARINT:
                response.success = bool(value)
        return response


class UserServiceRpc(Service, abc.ABC):
    """Interface of the user service; subclasses supply ``login``."""

    service_name = SERVICE_NAME

    @rpc_method(LoginRequest, LoginResponse)
    @abc.abstractmethod
    def login(self, controller, request, response, done) -> None:
        """Handle a login request, fill ``response`` and call ``done``."""


class UserServiceStub:
    """Calls the user service remotely through a channel."""

    def __init__(self, channel) -> None:
        self.channel = channel

    def login(self, controller, request, response):
        """Return the filled ``response``, or ``None`` if the call failed."""
        return self.channel.call_method((SERVICE_NAME, "login"), controller, request, response)