import socket
import struct

import pytest

from mini_socks.core.exceptions import EndpointError, ProtocolViolation, ViolationKind
from mini_socks.core.lib.codec import (
    ADDR_TYPE_DOMAIN,
    ADDR_TYPE_IPV4,
    REP_ADDR_NOT_SUPPORTED,
    REP_CMD_NOT_SUPPORTED,
    REP_GENERAL_FAILURE,
    REP_SUCCESS,
    decode_address,
    decode_domain,
    decode_ipv4,
    encode_reply,
    failure_reply,
    pack_endpoint,
    read_exact,
    reply_for_connection,
)


@pytest.fixture
def pair():
    reader, writer = socket.socketpair()
    reader.settimeout(5)
    yield reader, writer
    reader.close()
    writer.close()


class TestReadExact:
    def test_reassembles_fragments(self, pair):
        reader, writer = pair
        writer.sendall(b"\x05")
        writer.sendall(b"\x01\x00")
        assert read_exact(reader, 3) == b"\x05\x01\x00"

    def test_short_read_is_violation(self, pair):
        reader, writer = pair
        writer.sendall(b"\x05")
        writer.close()
        with pytest.raises(ProtocolViolation) as excinfo:
            read_exact(reader, 2)
        assert excinfo.value.kind is ViolationKind.SHORT_READ


class TestDecode:
    def test_ipv4(self, pair):
        reader, writer = pair
        writer.sendall(bytes([127, 0, 0, 1, 0x1F, 0x90]))
        assert decode_ipv4(reader) == "127.0.0.1:8080"

    def test_domain(self, pair):
        reader, writer = pair
        writer.sendall(bytes([11]) + b"example.com" + struct.pack("!H", 443))
        assert decode_domain(reader) == "example.com:443"

    def test_domain_max_length_accepted(self, pair):
        reader, writer = pair
        name = b"a" * 253
        writer.sendall(bytes([253]) + name + struct.pack("!H", 80))
        assert decode_domain(reader) == f"{'a' * 253}:80"

    def test_domain_too_long(self, pair):
        reader, writer = pair
        writer.sendall(bytes([254]) + b"a" * 254 + b"\x00\x50")
        with pytest.raises(ProtocolViolation) as excinfo:
            decode_domain(reader)
        assert excinfo.value.kind is ViolationKind.DOMAIN_TOO_LONG

    def test_truncated_domain(self, pair):
        reader, writer = pair
        writer.sendall(bytes([10]) + b"short")
        writer.close()
        with pytest.raises(ProtocolViolation) as excinfo:
            decode_domain(reader)
        assert excinfo.value.kind is ViolationKind.SHORT_READ

    def test_dispatch_by_address_type(self, pair):
        reader, writer = pair
        writer.sendall(bytes([10, 0, 0, 1, 0, 80]))
        writer.sendall(bytes([3]) + b"foo" + bytes([0, 22]))
        assert decode_address(reader, ADDR_TYPE_IPV4) == "10.0.0.1:80"
        assert decode_address(reader, ADDR_TYPE_DOMAIN) == "foo:22"

    def test_unknown_address_type(self, pair):
        reader, _ = pair
        with pytest.raises(ValueError):
            decode_address(reader, 4)


class TestEncode:
    @pytest.mark.parametrize(
        "code", [REP_GENERAL_FAILURE, REP_CMD_NOT_SUPPORTED, REP_ADDR_NOT_SUPPORTED]
    )
    def test_failure_reply(self, code):
        assert failure_reply(code) == bytes([5, code, 0, 1, 0, 0, 0, 0, 0, 0])

    def test_success_reply(self):
        frame = encode_reply(REP_SUCCESS, pack_endpoint(("192.168.1.2", 0x1F90)))
        assert frame == bytes([5, 0, 0, 1, 192, 168, 1, 2, 0x1F, 0x90])

    def test_rejects_bad_endpoint_length(self):
        with pytest.raises(EndpointError):
            encode_reply(REP_SUCCESS, b"\x00")

    def test_pack_ipv4_mapped(self):
        assert pack_endpoint(("::ffff:10.1.2.3", 80, 0, 0)) == bytes([10, 1, 2, 3, 0, 80])

    def test_pack_ipv6_is_error(self):
        with pytest.raises(EndpointError):
            pack_endpoint(("2001:db8::1", 80, 0, 0))

    def test_reply_for_live_connection(self, echo_server):
        with socket.create_connection(echo_server, timeout=5) as backend:
            frame = reply_for_connection(backend)
        host, port = echo_server
        assert len(frame) == 10
        assert frame[:4] == bytes([5, 0, 0, 1])
        assert frame[4:8] == socket.inet_aton(host)
        assert struct.unpack("!H", frame[8:])[0] == port
