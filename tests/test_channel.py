import socket
import threading
from dataclasses import dataclass

import pytest

from krpc.channel import Channel, split_host
from krpc.controller import Controller
from krpc.wire import WireError, decode_request, encode_field, iter_fields
from krpc.zookeeper import CreateMode, ZooKeeperError


@dataclass
class Echo:
    text: str = ""

    def to_bytes(self) -> bytes:
        return encode_field(1, self.text) if self.text else b""

    @staticmethod
    def from_bytes(data):
        msg = Echo()
        for number, _, value in iter_fields(data):
            if number == 1:
                msg.text = value.decode("utf-8")
        return msg


class FakeZk:
    def __init__(self, nodes):
        self.nodes = nodes
        self.queried = []

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def start(self):
        pass

    def create(self, path, data=None, mode=CreateMode.PERSISTENT):
        self.nodes.setdefault(path, data or "")

    def get_data(self, path):
        self.queried.append(path)
        return self.nodes.get(path, "")

    def close(self):
        pass


class OneShotServer:
    def __init__(self, reply):
        self.reply = reply
        self.received = None
        self.listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.listener.bind(("127.0.0.1", 0))
        self.listener.listen(1)
        self.port = self.listener.getsockname()[1]
        self.thread = threading.Thread(target=self._serve, daemon=True)
        self.thread.start()

    def _serve(self):
        try:
            conn, _ = self.listener.accept()
        except OSError:
            return
        with conn:
            buf = b""
            while True:
                chunk = conn.recv(4096)
                if not chunk:
                    return
                buf += chunk
                try:
                    self.received = decode_request(buf)
                except WireError:
                    continue
                conn.sendall(self.reply)
                break
            while conn.recv(4096):
                pass

    def close(self):
        self.listener.close()
        self.thread.join(2)


@pytest.fixture
def serve():
    servers = []

    def start(reply):
        server = OneShotServer(reply)
        servers.append(server)
        return server

    yield start
    for server in servers:
        server.close()


def _free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _unused_zk():
    raise AssertionError("zookeeper must not be queried")


def test_split_host():
    assert split_host("127.0.0.1:8000") == ("127.0.0.1", 8000)


def test_split_host_without_colon_raises():
    with pytest.raises(ValueError):
        split_host("127.0.0.1")


def test_split_host_bad_port_raises():
    with pytest.raises(ValueError):
        split_host("127.0.0.1:port")


def test_query_service_host_reads_method_node():
    zk = FakeZk({"/Echo/echo": "127.0.0.1:8000"})
    channel = Channel(zk_factory=lambda: zk)
    assert channel.query_service_host(zk, "Echo", "echo") == "127.0.0.1:8000"
    assert zk.queried == ["/Echo/echo"]


def test_query_service_host_missing_node():
    zk = FakeZk({})
    with pytest.raises(LookupError):
        Channel().query_service_host(zk, "Echo", "echo")


def test_query_service_host_invalid_address():
    zk = FakeZk({"/Echo/echo": "localhost"})
    with pytest.raises(ValueError):
        Channel().query_service_host(zk, "Echo", "echo")


def test_connect_refused_returns_false():
    assert Channel().connect("127.0.0.1", _free_port()) is False


def test_connect_succeeds_and_records_address(serve):
    server = serve(Echo("x").to_bytes())
    channel = Channel()
    assert channel.connect("127.0.0.1", server.port) is True
    assert (channel.ip, channel.port) == ("127.0.0.1", server.port)
    channel.close()


def test_call_method_discovers_server_and_fills_response(serve):
    server = serve(Echo("pong").to_bytes())
    nodes = {"/Echo/echo": f"127.0.0.1:{server.port}"}
    channel = Channel(zk_factory=lambda: FakeZk(nodes))
    controller = Controller()
    response = Echo()

    result = channel.call_method(("Echo", "echo"), controller, Echo("ping"), response)

    assert result is response
    assert response.text == "pong"
    assert not controller.failed()
    header, args = server.received
    assert (header.service_name, header.method_name) == ("Echo", "echo")
    assert Echo.from_bytes(args).text == "ping"


def test_call_method_uses_connection_made_at_construction(serve):
    server = serve(Echo("pong").to_bytes())
    channel = Channel(True, ip="127.0.0.1", port=server.port, zk_factory=_unused_zk)
    controller = Controller()
    response = Echo()

    channel.call_method("Echo.echo", controller, Echo("ping"), response)

    assert response.text == "pong"
    assert not controller.failed()


def test_call_method_fails_when_service_not_registered():
    channel = Channel(zk_factory=lambda: FakeZk({}))
    controller = Controller()
    response = Echo()
    assert channel.call_method("Echo.echo", controller, Echo("ping"), response) is None
    assert controller.failed()
    assert "/Echo/echo" in controller.error_text()


def test_call_method_fails_when_zookeeper_unreachable():
    class DownZk(FakeZk):
        def start(self):
            raise ZooKeeperError("zookeeper_init error")

    channel = Channel(zk_factory=lambda: DownZk({}))
    controller = Controller()
    assert channel.call_method("Echo.echo", controller, Echo("ping"), Echo()) is None
    assert controller.failed()


def test_call_method_fails_on_unparsable_reply(serve):
    server = serve(b"\x0f")
    channel = Channel(True, ip="127.0.0.1", port=server.port, zk_factory=_unused_zk)
    controller = Controller()
    response = Echo()
    assert channel.call_method("Echo.echo", controller, Echo("ping"), response) is None
    assert controller.failed()
    assert response.text == ""


def test_call_method_rejects_unqualified_method():
    with pytest.raises(ValueError):
        Channel(zk_factory=_unused_zk).call_method("echo", Controller(), Echo(), Echo())