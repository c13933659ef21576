"""Client side of an RPC call: service discovery, framing and transport."""

from __future__ import annotations

import dataclasses
import logging
import socket
import threading

from .controller import Controller
from .wire import encode_request
from .zookeeper import ZkClient, ZooKeeperError

_log = logging.getLogger(__name__)

_RECV_SIZE = 1024
_CONNECT_ATTEMPTS = 4
_zk_lock = threading.Lock()


def split_host(host_data: str) -> tuple[str, int]:
    """Split ``ip:port`` at the first colon into the address and the port number."""
    ip, sep, port_text = host_data.partition(":")
    if not sep:
        raise ValueError(f"address {host_data!r} is invalid")
    try:
        port = int(port_text.strip())
    except ValueError as exc:
        raise ValueError(f"address {host_data!r} has an invalid port") from exc
    if not 0 <= port <= 0xFFFF:
        raise ValueError(f"address {host_data!r} has an invalid port")
    return ip, port


def _method_names(method) -> tuple[str, str]:
    if isinstance(method, str):
        service_name, sep, method_name = method.rpartition(".")
        if not sep or not service_name or not method_name:
            raise ValueError(f"method {method!r} must be given as 'Service.method'")
        return service_name, method_name
    if isinstance(method, tuple) and len(method) == 2:
        return str(method[0]), str(method[1])
    raise TypeError("method must be 'Service.method' or a (service, method) pair")


def _copy_into(target, source) -> None:
    if dataclasses.is_dataclass(target):
        for field in dataclasses.fields(target):
            setattr(target, field.name, getattr(source, field.name))
    else:
        vars(target).update(vars(source))


class Channel:
    """Sends one request per connection to the server that ZooKeeper names.

    Methods are identified as ``"Service.method"`` or ``(service, method)``.
    """

    def __init__(
        self,
        connect_now: bool = False,
        *,
        ip: str = "",
        port: int = 0,
        zk_factory=ZkClient,
        timeout: float | None = None,
    ) -> None:
        self.ip = ip
        self.port = port
        self.timeout = timeout
        self._zk_factory = zk_factory
        self._sock: socket.socket | None = None
        if connect_now:
            for _ in range(_CONNECT_ATTEMPTS):
                if self.connect(ip, port):
                    break

    def __enter__(self) -> "Channel":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def query_service_host(self, zkclient, service_name: str, method_name: str) -> str:
        """Return the ``ip:port`` registered for the method in ZooKeeper."""
        method_path = f"/{service_name}/{method_name}"
        _log.info("method_path: %s", method_path)
        with _zk_lock:
            host_data = zkclient.get_data(method_path)
        if not host_data:
            _log.error("%s is not exist!", method_path)
            raise LookupError(f"{method_path} is not exist!")
        if ":" not in host_data:
            _log.error("%s address is invalid!", method_path)
            raise ValueError(f"{method_path} address is invalid!")
        return host_data

    def connect(self, ip: str, port: int) -> bool:
        """Open a TCP connection; return whether it succeeded."""
        try:
            sock = socket.create_connection((ip, port), timeout=self.timeout)
        except (OSError, OverflowError, ValueError) as exc:
            _log.error("connect server error: %s", exc)
            return False
        self.close()
        self._sock = sock
        self.ip, self.port = ip, port
        return True

    def call_method(self, method, controller, request, response):
        """Call ``method`` remotely and fill ``response`` with the reply.

        Returns ``response`` on success. On failure the controller is marked
        failed and ``None`` is returned.
        """
        service_name, method_name = _method_names(method)
        if controller is None:
            controller = Controller()

        if self._sock is None:
            try:
                with self._zk_factory() as zk:
                    zk.start()
                    host_data = self.query_service_host(zk, service_name, method_name)
                ip, port = split_host(host_data)
            except (ZooKeeperError, LookupError, ValueError) as exc:
                controller.set_failed(str(exc))
                return None
            _log.info("ip: %s port: %d", ip, port)
            if not self.connect(ip, port):
                controller.set_failed("connect server error")
                return None
            _log.info("connect server success")

        try:
            args = request.to_bytes()
        except (ValueError, TypeError):
            controller.set_failed("serialize request fail")
            return None
        frame = encode_request(service_name, method_name, args)

        sock = self._sock
        try:
            sock.sendall(frame)
        except OSError as exc:
            self.close()
            _log.error("send error: %s", exc)
            controller.set_failed(str(exc) or "send error")
            return None
        try:
            data = sock.recv(_RECV_SIZE)
        except OSError as exc:
            self.close()
            _log.error("recv error: %s", exc)
            controller.set_failed(str(exc) or "recv error")
            return None
        self.close()

        try:
            parsed = type(response).from_bytes(data)
        except ValueError as exc:
            _log.error("parse error: %s", exc)
            controller.set_failed(f"parse error: {exc}")
            return None
        _copy_into(response, parsed)
        return response

    def close(self) -> None:
        """Close the connection if one is open."""
        if self._sock is not None:
            self._sock.close()
            self._sock = None