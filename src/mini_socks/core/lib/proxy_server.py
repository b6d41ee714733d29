"""Threaded SOCKS5 proxy server.

This module implements the acceptor:
- Binds the configured listen address (bind failure is fatal)
- Spawns one handler thread per accepted connection
- Optionally caps concurrent sessions (unbounded by default)
- Logs transient accept errors and keeps accepting

Example:
    # Serve until interrupted
    create_proxy_server(ProxyConfig.from_listen_address("127.0.0.1:1080"))
"""

import contextlib
import socketserver
import threading

from loguru import logger

from mini_socks.core.config import ProxyConfig
from mini_socks.core.exceptions import ListenError
from mini_socks.core.utils.utils import format_bytes

from .connector import BackendConnector
from .dns_handler import DNSResolver
from .proxy_stats import ProxyStats
from .proxy_ui import create_proxy_ui
from .socks_handler import SocksHandler

DEFAULT_POLL_INTERVAL = 0.5  # Seconds between shutdown checks


class SocksProxy(socketserver.ThreadingMixIn, socketserver.TCPServer):
    """SOCKS proxy server implementation."""

    allow_reuse_address = True
    daemon_threads = True
    request_queue_size = 128

    def __init__(self, config: ProxyConfig, stats: ProxyStats | None = None) -> None:
        self.config = config
        self.stats = stats or ProxyStats()
        resolver = DNSResolver(config.nameservers) if config.nameservers else None
        self.connector = BackendConnector(resolver)
        self._slots = (
            threading.BoundedSemaphore(config.max_connections) if config.max_connections else None
        )
        self._stopping = threading.Event()
        self._poll_interval = DEFAULT_POLL_INTERVAL
        super().__init__((config.host, config.port), SocksHandler)

    @property
    def listen_address(self) -> str:
        host, port = self.server_address[:2]
        return f"{host}:{port}"

    def get_request(self):
        try:
            return super().get_request()
        except OSError as e:
            logger.warning(f"Accept error: {e}")
            raise

    def serve_forever(self, poll_interval: float = DEFAULT_POLL_INTERVAL) -> None:
        self._poll_interval = poll_interval
        self._stopping.clear()
        super().serve_forever(poll_interval)

    def shutdown(self) -> None:
        self._stopping.set()
        super().shutdown()

    def _wait_for_slot(self) -> bool:
        """Block until a session slot frees up; False if the server is stopping."""
        while not self._slots.acquire(timeout=self._poll_interval):
            if self._stopping.is_set():
                return False
        return True

    def process_request(self, request, client_address) -> None:
        """Start a session thread, waiting for a free slot when capped."""
        if self._slots is not None and not self._wait_for_slot():
            logger.info(f"Dropping {client_address[0]}:{client_address[1]}, server is stopping")
            self.shutdown_request(request)
            return
        try:
            super().process_request(request, client_address)
        except Exception:
            if self._slots is not None:
                self._slots.release()
            raise

    def process_request_thread(self, request, client_address) -> None:
        try:
            super().process_request_thread(request, client_address)
        finally:
            if self._slots is not None:
                self._slots.release()

    def handle_error(self, request, client_address) -> None:
        logger.exception(f"Unhandled error in session {client_address[0]}:{client_address[1]}")


def open_server(config: ProxyConfig, stats: ProxyStats | None = None) -> SocksProxy:
    """Bind the listening socket.

    Raises:
        ListenError: If the address cannot be bound
    """
    try:
        return SocksProxy(config, stats)
    except OSError as e:
        logger.critical(f"Listen error on {config.listen_address}: {e}")
        msg = f"cannot listen on {config.listen_address}: {e}"
        raise ListenError(msg) from e


def create_proxy_server(config: ProxyConfig, *, show_ui: bool = False) -> None:
    """Create the proxy server and serve until interrupted.

    Args:
        config: Listen address and tuning options
        show_ui: Start the live statistics panel

    Raises:
        ListenError: If the listen address cannot be bound
    """
    server = open_server(config)
    logger.info(f"Listening on {server.listen_address}...")

    ui = None
    if show_ui:
        ui, ui_thread = create_proxy_ui(server.listen_address, server.stats)
        ui_thread.start()

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        if ui:
            ui.stop()
        with contextlib.suppress(OSError):
            server.server_close()
        logger.info(
            f"Server closed after {server.stats.total_sessions} sessions, "
            f"{format_bytes(server.stats.total_bytes)} relayed"
        )
