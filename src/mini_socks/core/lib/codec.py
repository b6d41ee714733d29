"""SOCKS5 wire codec for addresses and reply frames (RFC 1928).

This module converts between the wire representation used in SOCKS5 request
and reply frames and the ``host:port`` strings handed to the backend connector:
- Exact-length reads from the client socket
- IPv4 (ATYP 0x01) and domain-name (ATYP 0x03) request decoding
- Fixed 10-byte reply frame encoding

Every reply this server sends carries an IPv4 bound address, so a reply frame
is always exactly 10 bytes.

Example:
    target = decode_address(sock, ADDR_TYPE_IPV4)  # "127.0.0.1:8080"
    sock.sendall(encode_reply(REP_SUCCESS, pack_endpoint(backend.getpeername())))
"""

import ipaddress
import socket
import struct
from typing import Final

from mini_socks.core.exceptions import EndpointError, ProtocolViolation, ViolationKind

# SOCKS protocol constants
SOCKS_VERSION: Final = 5
RESERVED: Final = 0
CONNECT_CMD: Final = 1
ADDR_TYPE_IPV4: Final = 1
ADDR_TYPE_DOMAIN: Final = 3

# Authentication methods
METHOD_NO_AUTH: Final = 0x00
METHOD_NO_ACCEPTABLE: Final = 0xFF

# Reply codes
REP_SUCCESS: Final = 0x00
REP_GENERAL_FAILURE: Final = 0x05
REP_CMD_NOT_SUPPORTED: Final = 0x07
REP_ADDR_NOT_SUPPORTED: Final = 0x08

MAX_DOMAIN_LENGTH: Final = 253
REPLY_LENGTH: Final = 10

ZERO_ENDPOINT: Final = bytes(6)

_REPLY_HEADER = struct.Struct("!BBBB")
_PORT = struct.Struct("!H")


def read_exact(sock: socket.socket, count: int) -> bytes:
    """Read exactly ``count`` bytes from ``sock``.

    Raises:
        ProtocolViolation: If the peer closes the stream first
    """
    buf = bytearray()
    while len(buf) < count:
        chunk = sock.recv(count - len(buf))
        if not chunk:
            raise ProtocolViolation(ViolationKind.SHORT_READ, f"expected {count} bytes, got {len(buf)}")
        buf += chunk
    return bytes(buf)


def decode_ipv4(sock: socket.socket) -> str:
    """Read a 4-byte address and 2-byte port, returning ``a.b.c.d:port``."""
    data = read_exact(sock, 6)
    (port,) = _PORT.unpack(data[4:])
    return f"{socket.inet_ntoa(data[:4])}:{port}"


def decode_domain(sock: socket.socket) -> str:
    """Read a length-prefixed domain name and port, returning ``name:port``.

    Raises:
        ProtocolViolation: If the name is longer than 253 bytes or the frame is short
    """
    (length,) = read_exact(sock, 1)
    if length > MAX_DOMAIN_LENGTH:
        raise ProtocolViolation(ViolationKind.DOMAIN_TOO_LONG, f"{length} bytes")

    data = read_exact(sock, length + 2)
    (port,) = _PORT.unpack(data[length:])
    # latin-1 maps every byte, so odd names fail at dial time instead of here
    return f"{data[:length].decode('latin-1')}:{port}"


def decode_address(sock: socket.socket, addr_type: int) -> str:
    """Decode DST.ADDR and DST.PORT for a supported address type."""
    if addr_type == ADDR_TYPE_IPV4:
        return decode_ipv4(sock)
    if addr_type == ADDR_TYPE_DOMAIN:
        return decode_domain(sock)
    msg = f"unsupported address type {addr_type:#04x}"
    raise ValueError(msg)


def pack_endpoint(address: tuple) -> bytes:
    """Pack a socket address as 4 address bytes plus a big-endian port.

    IPv4-mapped IPv6 addresses are unwrapped.

    Raises:
        EndpointError: If the address is not IPv4
    """
    host, port = address[0], address[1]
    try:
        ip = ipaddress.ip_address(host)
    except ValueError as e:
        msg = f"invalid address {host!r}"
        raise EndpointError(msg) from e

    if isinstance(ip, ipaddress.IPv6Address):
        if ip.ipv4_mapped is None:
            msg = f"not an IPv4 address: {host}"
            raise EndpointError(msg)
        ip = ip.ipv4_mapped
    return ip.packed + _PORT.pack(port)


def encode_reply(code: int, endpoint: bytes = ZERO_ENDPOINT) -> bytes:
    """Build a 10-byte reply frame.

    Args:
        code: REP status byte
        endpoint: Packed BND.ADDR and BND.PORT, zeroed for failures
    """
    if len(endpoint) != len(ZERO_ENDPOINT):
        msg = f"endpoint must be 6 bytes, got {len(endpoint)}"
        raise EndpointError(msg)
    return _REPLY_HEADER.pack(SOCKS_VERSION, code, RESERVED, ADDR_TYPE_IPV4) + endpoint


def reply_for_connection(backend: socket.socket) -> bytes:
    """Build the success reply for an established backend connection."""
    return encode_reply(REP_SUCCESS, pack_endpoint(backend.getpeername()))


def failure_reply(code: int) -> bytes:
    return encode_reply(code)
