import socket
import socketserver
import struct
import threading
import time

import pytest
from loguru import logger

from mini_socks.core.config import ProxyConfig
from mini_socks.core.lib import SocksProxy

TIMEOUT = 5.0


def recv_exact(sock: socket.socket, count: int) -> bytes:
    buf = b""
    while len(buf) < count:
        chunk = sock.recv(count - len(buf))
        if not chunk:
            break
        buf += chunk
    return buf


def connect_request(host: str, port: int) -> bytes:
    return bytes([5, 1, 0, 1]) + socket.inet_aton(host) + struct.pack("!H", port)


def domain_request(name: bytes, port: int) -> bytes:
    return bytes([5, 1, 0, 3, len(name)]) + name + struct.pack("!H", port)


def wait_for(predicate, timeout: float = TIMEOUT) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def unused_port() -> int:
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class EchoHandler(socketserver.BaseRequestHandler):
    def handle(self) -> None:
        while data := self.request.recv(4096):
            self.request.sendall(data)


class EchoServer(socketserver.ThreadingMixIn, socketserver.TCPServer):
    allow_reuse_address = True
    daemon_threads = True


@pytest.fixture
def echo_server():
    server = EchoServer(("127.0.0.1", 0), EchoHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server.server_address
    server.shutdown()
    server.server_close()


def start_proxy(config: ProxyConfig) -> SocksProxy:
    server = SocksProxy(config)
    threading.Thread(target=server.serve_forever, kwargs={"poll_interval": 0.05}, daemon=True).start()
    return server


@pytest.fixture
def proxy():
    server = start_proxy(ProxyConfig(host="127.0.0.1", port=0))
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def client(proxy):
    sock = socket.create_connection(proxy.server_address[:2], timeout=TIMEOUT)
    yield sock
    sock.close()


@pytest.fixture
def log_messages():
    messages: list[str] = []
    handler_id = logger.add(messages.append, format="{level} {message}", level="DEBUG")
    yield messages
    logger.remove(handler_id)
