"""Custom exceptions for the proxy server.

This module defines the exceptions used throughout the proxy server implementation.
They separate:
- Protocol violations by the client (session aborted, no reply)
- Backend dial failures (general-failure reply)
- Internal endpoint errors (non-IPv4 remote address)
- DNS resolution failures
- Listener configuration and bind failures (fatal)

Every per-session exception is caught by the session handler; only
``ListenError`` reaches the command line.

Example:
    try:
        backend = connector.connect("example.com:80")
    except BackendConnectError as e:
        logger.warning(f"failed to connect to {e.target}: {e}")
"""

from enum import Enum


class ProxyError(Exception):
    """Base exception for proxy errors."""


class ViolationKind(Enum):
    """Kinds of malformed client input."""

    SHORT_READ = "short read"
    BAD_VERSION = "bad version"
    BAD_RESERVED = "bad reserved byte"
    DOMAIN_TOO_LONG = "domain name too long"


class ProtocolViolation(ProxyError):
    """Raised when a client sends a malformed handshake or request frame."""

    def __init__(self, kind: ViolationKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"protocol error: {kind.value}" + (f" ({detail})" if detail else ""))


class BackendConnectError(ProxyError):
    """Raised when the requested backend cannot be reached."""

    def __init__(self, target: str, reason: object) -> None:
        self.target = target
        self.reason = reason
        super().__init__(f"failed to connect to {target}: {reason}")


class EndpointError(ProxyError):
    """Raised when a socket address cannot be encoded as an IPv4 endpoint."""


class DNSResolutionError(ProxyError):
    """Raised when DNS resolution fails."""


class ListenError(ProxyError):
    """Raised when the listen address is invalid or cannot be bound."""
