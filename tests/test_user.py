import pytest

from krpc.controller import Controller
from krpc.service import MethodDescriptor
from krpc.user import (
    LoginRequest,
    LoginResponse,
    ResultCode,
    UserServiceRpc,
    UserServiceStub,
)
from krpc.wire import WireError


class _Echo(UserServiceRpc):
    def login(self, controller, request, response, done):
        response.success = request.name == "zhangsan"
        done()


class _RecordingChannel:
    def __init__(self):
        self.calls = []

    def call_method(self, method, controller, request, response):
        self.calls.append((method, request))
        response.success = True
        return response


def test_login_request_wire_bytes():
    pwd = "password"
    data = LoginRequest(name="a", pwd=pwd).to_bytes()
    assert data.startswith(b"\x0a\x01a\x12")
    assert LoginRequest.from_bytes(data) == LoginRequest(name="a", pwd=pwd)


def test_empty_request_is_empty_bytes():
    assert LoginRequest().to_bytes() == b""
    assert LoginRequest.from_bytes(b"") == LoginRequest()


def test_result_code_round_trip_negative():
    code = ResultCode(errcode=-5, errmsg="bad")
    assert ResultCode.from_bytes(code.to_bytes()) == code


def test_result_code_out_of_range():
    with pytest.raises(ValueError):
        ResultCode(errcode=1 << 40).to_bytes()


def test_login_response_round_trip():
    response = LoginResponse(ResultCode(3, "oops"), True)
    assert LoginResponse.from_bytes(response.to_bytes()) == response


def test_login_response_default_round_trip():
    assert LoginResponse.from_bytes(LoginResponse().to_bytes()) == LoginResponse()


def test_truncated_data_raises():
    with pytest.raises(WireError):
        LoginRequest.from_bytes(b"\x0a\x05ab")


def test_invalid_utf8_raises():
    with pytest.raises(WireError):
        LoginRequest.from_bytes(b"\x0a\x01\xff")


def test_interface_cannot_be_instantiated():
    with pytest.raises(TypeError):
        UserServiceRpc()


def test_subclass_exposes_login_method():
    methods = _Echo().methods()
    assert methods["login"] == MethodDescriptor("login", LoginRequest, LoginResponse)
    assert _Echo().name == "UserServiceRpc"


def test_subclass_call_method_dispatches():
    called = []
    response = LoginResponse()
    _Echo().call_method(
        "login", Controller(), LoginRequest(name="zhangsan"), response, lambda: called.append(1)
    )
    assert response.success is True
    assert called == [1]


def test_stub_uses_service_and_method_names():
    channel = _RecordingChannel()
    request = LoginRequest(name="zhangsan")
    result = UserServiceStub(channel).login(Controller(), request, LoginResponse())
    assert channel.calls == [(("UserServiceRpc", "login"), request)]
    assert result.success is True