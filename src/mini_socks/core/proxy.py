"""Core proxy functionality and main entry point for the SOCKS5 proxy server.

This module exposes the public API of the proxy implementation:

Example:
    from mini_socks.core.config import ProxyConfig
    from mini_socks.core.proxy import create_proxy_server

    # Serve SOCKS5 on localhost:1080 until interrupted
    create_proxy_server(ProxyConfig.from_listen_address("127.0.0.1:1080"))

Attributes:
    __all__ (list): List of public components exposed by this module
"""

from .lib import SocksProxy, create_proxy_server

__all__ = ["SocksProxy", "create_proxy_server"]
