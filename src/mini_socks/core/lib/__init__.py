"""Core proxy library components."""

from .bridge import Bridge
from .connector import BackendConnector
from .proxy_server import SocksProxy, create_proxy_server, open_server
from .proxy_stats import ProxyStats
from .socks_handler import SocksHandler

__all__ = [
    "BackendConnector",
    "Bridge",
    "create_proxy_server",
    "open_server",
    "ProxyStats",
    "SocksHandler",
    "SocksProxy",
]
