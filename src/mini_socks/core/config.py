"""Proxy server configuration.

The listen address and tuning knobs are collected into an immutable
``ProxyConfig`` which is handed to the acceptor explicitly.

Example:
    config = ProxyConfig.from_listen_address("0.0.0.0:1080", max_connections=256)
    print(config.listen_address)  # 0.0.0.0:1080
"""

from dataclasses import dataclass, field
from typing import Final

from mini_socks.core.exceptions import ListenError

DEFAULT_BUFFER_SIZE: Final = 8192
MAX_PORT: Final = 65535


def parse_host_port(address: str) -> tuple[str, int]:
    """Split a ``host:port`` string.

    An empty host (``":1080"``) means all interfaces.

    Raises:
        ValueError: If the string has no port or the port is out of range
    """
    host, sep, port_str = address.rpartition(":")
    if not sep:
        msg = f"missing port in address {address!r}"
        raise ValueError(msg)
    if not port_str.isdigit():
        msg = f"invalid port in address {address!r}"
        raise ValueError(msg)
    port = int(port_str)
    if port > MAX_PORT:
        msg = f"port out of range in address {address!r}"
        raise ValueError(msg)
    return host, port


@dataclass(frozen=True)
class ProxyConfig:
    """Runtime configuration for a proxy server instance.

    Attributes:
        host: Address to bind to ("" for all interfaces)
        port: Port to listen on (0 picks an ephemeral port)
        max_connections: Cap on concurrent sessions, None for unbounded
        buffer_size: Size of each relay direction's copy buffer
        nameservers: DNS servers for domain targets; empty uses the system resolver
    """

    host: str
    port: int
    max_connections: int | None = None
    buffer_size: int = DEFAULT_BUFFER_SIZE
    nameservers: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.max_connections is not None and self.max_connections < 1:
            msg = "max_connections must be positive"
            raise ValueError(msg)
        if self.buffer_size < 1:
            msg = "buffer_size must be positive"
            raise ValueError(msg)

    @classmethod
    def from_listen_address(cls, address: str, **kwargs) -> "ProxyConfig":
        """Build a config from a ``host:port`` listen string.

        Raises:
            ListenError: If the address cannot be parsed
        """
        try:
            host, port = parse_host_port(address)
        except ValueError as e:
            raise ListenError(str(e)) from e
        return cls(host=host, port=port, **kwargs)

    @property
    def listen_address(self) -> str:
        return f"{self.host}:{self.port}"
