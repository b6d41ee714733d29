"""Backend connector: dial the CONNECT target.

The connector opens a plain TCP connection to a ``host:port`` string. There is
no retry and no timeout; an unresponsive backend blocks the calling session.

Example:
    connector = BackendConnector()
    backend = connector.connect("example.com:80")
"""

import socket

from loguru import logger

from mini_socks.core.config import parse_host_port
from mini_socks.core.exceptions import BackendConnectError, DNSResolutionError

from .dns_handler import DNSResolver


class BackendConnector:
    """Open TCP connections to requested backends."""

    def __init__(self, resolver: DNSResolver | None = None) -> None:
        self.resolver = resolver

    def connect(self, target: str) -> socket.socket:
        """Connect to ``target``.

        Args:
            target: ``host:port`` string produced by the address codec

        Returns:
            socket.socket: The connected backend socket

        Raises:
            BackendConnectError: If the target is malformed, unresolvable or unreachable
        """
        try:
            host, port = parse_host_port(target)
        except ValueError as e:
            raise BackendConnectError(target, e) from e

        if self.resolver is not None:
            try:
                host = self.resolver.resolve(host)
            except DNSResolutionError as e:
                raise BackendConnectError(target, e) from e

        logger.debug(f"trying to connect to {target}...")
        try:
            return self._dial(host, port)
        except (OSError, UnicodeError) as e:
            raise BackendConnectError(target, e) from e

    @staticmethod
    def _dial(host: str, port: int) -> socket.socket:
        """Try each IPv4 address of ``host`` in turn."""
        last_error: OSError | None = None
        for family, type_, proto, _, addr in socket.getaddrinfo(host, port, socket.AF_INET, socket.SOCK_STREAM):
            remote = socket.socket(family, type_, proto)
            try:
                remote.connect(addr)
            except OSError as e:
                remote.close()
                last_error = e
                continue
            return remote
        raise last_error or OSError(f"no IPv4 address for {host}")
