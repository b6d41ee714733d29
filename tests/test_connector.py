import socket

import pytest

from mini_socks.core.exceptions import BackendConnectError, DNSResolutionError
from mini_socks.core.lib.connector import BackendConnector
from mini_socks.core.lib.dns_handler import DNSResolver

from .conftest import unused_port


@pytest.fixture
def listener():
    sock = socket.socket()
    sock.bind(("127.0.0.1", 0))
    sock.listen()
    yield sock
    sock.close()


def test_connects_to_ipv4_target(listener):
    host, port = listener.getsockname()
    backend = BackendConnector().connect(f"{host}:{port}")
    with backend:
        assert backend.getpeername() == (host, port)
        assert backend.family == socket.AF_INET


def test_connection_refused():
    target = f"127.0.0.1:{unused_port()}"
    with pytest.raises(BackendConnectError) as excinfo:
        BackendConnector().connect(target)
    assert excinfo.value.target == target
    assert target in str(excinfo.value)


@pytest.mark.parametrize("target", ["no-port", "host:http", "host:70000"])
def test_malformed_target(target):
    with pytest.raises(BackendConnectError):
        BackendConnector().connect(target)


def test_uses_configured_resolver(listener, mocker):
    _, port = listener.getsockname()
    resolver = mocker.create_autospec(DNSResolver, instance=True)
    resolver.resolve.return_value = "127.0.0.1"

    backend = BackendConnector(resolver).connect(f"backend.test:{port}")
    with backend:
        assert backend.getpeername() == ("127.0.0.1", port)
    resolver.resolve.assert_called_once_with("backend.test")


def test_resolution_failure_is_connect_error(mocker):
    resolver = mocker.create_autospec(DNSResolver, instance=True)
    resolver.resolve.side_effect = DNSResolutionError("nxdomain")

    with pytest.raises(BackendConnectError) as excinfo:
        BackendConnector(resolver).connect("missing.test:80")
    assert isinstance(excinfo.value.__cause__, DNSResolutionError)
