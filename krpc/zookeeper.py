"""A small ZooKeeper client speaking the ZooKeeper binary protocol."""

from __future__ import annotations

import enum
import logging
import socket
import struct
import threading

from .application import get_config

_log = logging.getLogger(__name__)

ZOK = 0
ZNONODE = -101
ZNODEEXISTS = -110

_OP_CREATE = 1
_OP_EXISTS = 3
_OP_GET_DATA = 4
_OP_PING = 11
_OP_CLOSE = -11
_PING_XID = -2
_PERM_ALL = 31


class ZooKeeperError(Exception):
    """Raised when the ZooKeeper server cannot be reached or refuses a request."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class CreateMode(enum.IntEnum):
    PERSISTENT = 0
    EPHEMERAL = 1


def _pack_buffer(data) -> bytes:
    if data is None:
        return struct.pack(">i", -1)
    if isinstance(data, str):
        data = data.encode("utf-8")
    return struct.pack(">i", len(data)) + bytes(data)


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def _unpack(self, fmt: str):
        size = struct.calcsize(fmt)
        if self._pos + size > len(self._data):
            raise ZooKeeperError("truncated reply")
        (value,) = struct.unpack_from(fmt, self._data, self._pos)
        self._pos += size
        return value

    def int(self) -> int:
        return self._unpack(">i")

    def long(self) -> int:
        return self._unpack(">q")

    def buffer(self) -> bytes | None:
        length = self.int()
        if length < 0:
            return None
        end = self._pos + length
        if end > len(self._data):
            raise ZooKeeperError("truncated reply")
        value = self._data[self._pos:end]
        self._pos = end
        return value


class ZkClient:
    """Connects to one ZooKeeper server and creates and reads znodes.

    Without a connect string, ``start`` uses ``zookeeperip`` and
    ``zookeeperport`` from the application configuration.
    """

    def __init__(self, connect_string: str | None = None, timeout_ms: int = 6000) -> None:
        self.connect_string = connect_string
        self.timeout_ms = timeout_ms
        self.session_id = 0
        self._sock: socket.socket | None = None
        self._lock = threading.Lock()
        self._xid = 0
        self._negotiated_ms = timeout_ms
        self._stop = threading.Event()
        self._pinger: threading.Thread | None = None

    def __enter__(self) -> "ZkClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def start(self) -> None:
        """Connect and establish a session; raises ``ZooKeeperError`` on failure."""
        connect_string = self.connect_string
        if connect_string is None:
            config = get_config()
            connect_string = f"{config.load('zookeeperip')}:{config.load('zookeeperport')}"
        host, _, port_text = connect_string.rpartition(":")
        try:
            port = int(port_text)
        except ValueError as exc:
            raise ZooKeeperError(f"invalid connect string {connect_string!r}") from exc
        try:
            self._sock = socket.create_connection((host, port), timeout=self.timeout_ms / 1000)
            request = struct.pack(">iqiq", 0, 0, self.timeout_ms, 0) + _pack_buffer(bytes(16))
            self._send(request)
            reply = _Reader(self._recv())
        except (OSError, ZooKeeperError) as exc:
            self._drop_socket()
            _log.error("zookeeper_init error")
            raise ZooKeeperError("zookeeper_init error") from exc
        reply.int()
        negotiated = reply.int()
        session_id = reply.long()
        if negotiated <= 0:
            self._drop_socket()
            raise ZooKeeperError("zookeeper session expired")
        self._negotiated_ms = negotiated
        self.session_id = session_id
        self._stop.clear()
        self._pinger = threading.Thread(target=self._ping_loop, daemon=True)
        self._pinger.start()
        _log.info("zookeeper_init success")

    def create(self, path: str, data=None, mode: CreateMode = CreateMode.PERSISTENT) -> None:
        """Create ``path`` unless it already exists."""
        if self.exists(path):
            return
        body = (
            _pack_buffer(path)
            + _pack_buffer(data)
            + struct.pack(">ii", 1, _PERM_ALL)
            + _pack_buffer("world")
            + _pack_buffer("anyone")
            + struct.pack(">i", int(mode))
        )
        err, _ = self._submit(_OP_CREATE, body)
        if err != ZOK:
            _log.error("znode create failed... path:%s", path)
            raise ZooKeeperError(f"znode create failed... path:{path}", err)
        _log.info("znode create success... path:%s", path)

    def exists(self, path: str) -> bool:
        err, _ = self._submit(_OP_EXISTS, _pack_buffer(path) + b"\x00")
        if err == ZOK:
            return True
        if err == ZNONODE:
            return False
        raise ZooKeeperError(f"zoo_exists error for {path}", err)

    def get_data(self, path: str) -> str:
        """Return the data of ``path``, or an empty string on any failure."""
        try:
            err, reader = self._submit(_OP_GET_DATA, _pack_buffer(path) + b"\x00")
            if err != ZOK:
                _log.error("zoo_get error")
                return ""
            data = reader.buffer()
        except ZooKeeperError:
            _log.error("zoo_get error")
            return ""
        if not data:
            return ""
        return data.split(b"\x00", 1)[0].decode("utf-8", errors="replace")

    def close(self) -> None:
        """End the session and close the connection."""
        self._stop.set()
        if self._sock is None:
            return
        try:
            self._submit(_OP_CLOSE, b"")
        except ZooKeeperError:
            pass
        self._drop_socket()
        if self._pinger is not None and self._pinger is not threading.current_thread():
            self._pinger.join(timeout=1)
        self._pinger = None

    def _drop_socket(self) -> None:
        with self._lock:
            if self._sock is not None:
                self._sock.close()
                self._sock = None

    def _send(self, payload: bytes) -> None:
        self._sock.sendall(struct.pack(">i", len(payload)) + payload)

    def _recv_exact(self, size: int) -> bytes:
        buf = bytearray()
        while len(buf) < size:
            chunk = self._sock.recv(size - len(buf))
            if not chunk:
                raise ZooKeeperError("connection closed by server")
            buf += chunk
        return bytes(buf)

    def _recv(self) -> bytes:
        (length,) = struct.unpack(">i", self._recv_exact(4))
        return self._recv_exact(length)

    def _submit(self, op: int, body: bytes, xid: int | None = None) -> tuple[int, _Reader]:
        with self._lock:
            if self._sock is None:
                raise ZooKeeperError("client is not connected")
            if xid is None:
                self._xid += 1
                xid = self._xid
            try:
                self._send(struct.pack(">ii", xid, op) + body)
                while True:
                    reader = _Reader(self._recv())
                    reply_xid = reader.int()
                    reader.long()
                    err = reader.int()
                    if reply_xid == xid:
                        return err, reader
            except OSError as exc:
                raise ZooKeeperError(str(exc)) from exc

    def _ping_loop(self) -> None:
        interval = max(self._negotiated_ms / 3000, 0.1)
        while not self._stop.wait(interval):
            try:
                self._submit(_OP_PING, b"", xid=_PING_XID)
            except ZooKeeperError as exc:
                if not self._stop.is_set():
                    _log.error("zookeeper ping failed: %s", exc)
                return