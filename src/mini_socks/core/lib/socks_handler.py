"""SOCKS5 protocol handler implementation for the proxy server.

This module implements the per-connection state machine for the RFC 1928
subset this server speaks:
- Greeting and method selection (no-authentication only)
- Request parsing (CONNECT only, IPv4 and domain-name addresses)
- Dispatch to the backend connector and the bridge

Each stage consumes exactly the bytes it expects. Malformed input raises
``ProtocolViolation`` from the codec helpers; the single guard in ``handle``
logs it and the server closes the client socket without sending anything
further. Well-formed but unsupported requests get their RFC reply first.

Example:
    # The handler is used by the SocksProxy server class
    server = SocksProxy(config)
    server.serve_forever()
"""

import socket
import socketserver
import struct

from loguru import logger

from mini_socks.core.exceptions import (
    BackendConnectError,
    EndpointError,
    ProtocolViolation,
    ViolationKind,
)

from .bridge import Bridge
from .codec import (
    ADDR_TYPE_DOMAIN,
    ADDR_TYPE_IPV4,
    CONNECT_CMD,
    METHOD_NO_ACCEPTABLE,
    METHOD_NO_AUTH,
    REP_ADDR_NOT_SUPPORTED,
    REP_CMD_NOT_SUPPORTED,
    REP_GENERAL_FAILURE,
    RESERVED,
    SOCKS_VERSION,
    decode_address,
    failure_reply,
    read_exact,
    reply_for_connection,
)

SUPPORTED_ADDR_TYPES = frozenset({ADDR_TYPE_IPV4, ADDR_TYPE_DOMAIN})


def format_address(address: tuple) -> str:
    return f"{address[0]}:{address[1]}"


class SocksHandler(socketserver.BaseRequestHandler):
    """Handle one SOCKS5 client connection from greeting to teardown."""

    request: socket.socket

    @property
    def peer(self) -> str:
        return format_address(self.client_address)

    def _negotiate(self) -> bool:
        """Read the greeting and select a method.

        Returns:
            bool: False if the client offered no acceptable method
        """
        version, nmethods = struct.unpack("!BB", read_exact(self.request, 2))
        if version != SOCKS_VERSION:
            raise ProtocolViolation(ViolationKind.BAD_VERSION, f"greeting version {version}")

        methods = read_exact(self.request, nmethods)
        if METHOD_NO_AUTH not in methods:
            self.request.sendall(struct.pack("!BB", SOCKS_VERSION, METHOD_NO_ACCEPTABLE))
            logger.info(f"no acceptable auth method from {self.peer}: {methods.hex()}")
            return False

        self.request.sendall(struct.pack("!BB", SOCKS_VERSION, METHOD_NO_AUTH))
        return True

    def _read_request(self) -> str | None:
        """Read the command request.

        Returns:
            str | None: The ``host:port`` target, or None if the request was rejected
        """
        version, cmd, reserved, addr_type = struct.unpack("!BBBB", read_exact(self.request, 4))
        if version != SOCKS_VERSION:
            raise ProtocolViolation(ViolationKind.BAD_VERSION, f"request version {version}")
        if reserved != RESERVED:
            raise ProtocolViolation(ViolationKind.BAD_RESERVED, f"reserved byte {reserved}")

        if cmd != CONNECT_CMD:
            logger.info(f"command {cmd:#04x} not supported, from {self.peer}")
            self.request.sendall(failure_reply(REP_CMD_NOT_SUPPORTED))
            return None

        if addr_type not in SUPPORTED_ADDR_TYPES:
            logger.info(f"address type {addr_type:#04x} not supported, from {self.peer}")
            self.request.sendall(failure_reply(REP_ADDR_NOT_SUPPORTED))
            return None

        return decode_address(self.request, addr_type)

    def handle_connect(self, target: str) -> None:
        """Dial the backend, reply, and relay until either side closes."""
        try:
            backend = self.server.connector.connect(target)
        except BackendConnectError as e:
            logger.warning(str(e))
            self.request.sendall(failure_reply(REP_GENERAL_FAILURE))
            return

        backend_addr = target
        try:
            backend_addr = format_address(backend.getpeername())
            logger.info(f"CONNECTED backend {backend_addr} for {self.peer}")
            self.request.sendall(reply_for_connection(backend))
            first = Bridge(
                self.request,
                backend,
                buffer_size=self.server.config.buffer_size,
                stats=self.server.stats,
            ).run()
            logger.debug(f"{self.peer} <-> {backend_addr}: {first} closed first")
        finally:
            backend.close()
            logger.info(f"DISCONNECTED backend {backend_addr}")

    def handle(self) -> None:
        """Handle incoming SOCKS5 connection."""
        logger.info(f"ACCEPTED frontend {self.peer}")
        self.server.stats.session_started()
        try:
            if not self._negotiate():
                return
            target = self._read_request()
            if target is None:
                return
            self.handle_connect(target)
        except ProtocolViolation as e:
            logger.warning(f"ERROR frontend {self.peer}: {e}")
        except EndpointError:
            logger.exception(f"ERROR frontend {self.peer}: backend address is not IPv4")
        except OSError as e:
            logger.warning(f"ERROR frontend {self.peer}: {e}")
        finally:
            self.server.stats.session_ended()
            logger.info(f"DISCONNECTED frontend {self.peer}")
