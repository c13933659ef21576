"""Server side of RPC: publishing services and answering requests."""

from __future__ import annotations

import logging
import re
import socketserver
from dataclasses import dataclass

from .application import get_config
from .controller import Controller
from .service import MethodDescriptor, Service
from .wire import WireError, decode_request
from .zookeeper import CreateMode, ZkClient

_log = logging.getLogger(__name__)

_RECV_SIZE = 65536


def _atoi(text: str) -> int:
    match = re.match(r"\s*([+-]?\d+)", text)
    return int(match.group(1)) if match else 0


@dataclass
class _ServiceInfo:
    service: Service
    methods: dict[str, MethodDescriptor]


class _RequestHandler(socketserver.BaseRequestHandler):
    def handle(self) -> None:
        provider = self.server.provider
        while True:
            try:
                data = self.request.recv(_RECV_SIZE)
            except OSError:
                return
            if not data:
                return
            _log.debug("OnMessage")
            reply = provider.handle_message(data)
            if reply:
                try:
                    self.request.sendall(reply)
                except OSError:
                    return


class _RpcServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, address, provider: "Provider") -> None:
        self.provider = provider
        super().__init__(address, _RequestHandler)


class Provider:
    """Publishes services on a TCP port and registers them in ZooKeeper."""

    def __init__(self, zk_factory=ZkClient) -> None:
        self._zk_factory = zk_factory
        self._services: dict[str, _ServiceInfo] = {}
        self._server: _RpcServer | None = None

    def __enter__(self) -> "Provider":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    def notify_service(self, service: Service) -> None:
        """Publish ``service`` and all of its remotely callable methods."""
        methods = service.methods()
        _log.info("service_name=%s", service.name)
        for method_name in methods:
            _log.info("method_name=%s", method_name)
        self._services.setdefault(service.name, _ServiceInfo(service, methods))

    def handle_message(self, data: bytes) -> bytes | None:
        """Answer one request frame; return the serialized response, or ``None``."""
        try:
            header, args = decode_request(data)
        except WireError as exc:
            _log.error("krpcHeader parse error: %s", exc)
            return None

        service_name, method_name = header.service_name, header.method_name
        info = self._services.get(service_name)
        if info is None:
            _log.error("%s is not exist!", service_name)
            return None
        descriptor = info.methods.get(method_name)
        if descriptor is None:
            _log.error("%s.%s is not exist!", service_name, method_name)
            return None

        try:
            request = descriptor.request_type.from_bytes(args)
        except ValueError:
            _log.error("%s.%s parse error!", service_name, method_name)
            return None
        response = descriptor.response_type()

        replies: list[bytes | None] = []

        def done() -> None:
            replies.append(self._serialize(response))

        info.service.call_method(descriptor, Controller(), request, response, done)
        return replies[0] if replies else None

    @staticmethod
    def _serialize(response) -> bytes | None:
        try:
            return response.to_bytes()
        except (ValueError, TypeError):
            _log.error("serialize error!")
            return None

    def register(self, zkclient, ip: str, port: int) -> None:
        """Create a persistent node per service and an ephemeral node per method."""
        address = f"{ip}:{port}"
        for service_name, info in self._services.items():
            service_path = f"/{service_name}"
            zkclient.create(service_path, None, CreateMode.PERSISTENT)
            for method_name in info.methods:
                zkclient.create(f"{service_path}/{method_name}", address, CreateMode.EPHEMERAL)

    def run(self) -> None:
        """Serve requests on the configured address until ``shutdown`` is called."""
        config = get_config()
        ip = config.load("rpcserverip")
        port = _atoi(config.load("rpcserverport"))
        server = _RpcServer((ip, port), self)
        self._server = server
        bound_port = server.server_address[1]
        zk = self._zk_factory()
        try:
            zk.start()
            self.register(zk, ip, bound_port)
            _log.info("RpcProvider start service at ip:%s port:%d", ip, bound_port)
            server.serve_forever()
        finally:
            zk.close()
            server.server_close()

    def shutdown(self) -> None:
        """Stop a running ``run`` loop."""
        server = self._server
        self._server = None
        if server is not None:
            server.shutdown()