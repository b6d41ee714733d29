"""Bidirectional relay between the client and backend sockets.

Each direction runs in its own thread and copies through a fixed-size buffer
until end-of-stream or an error. Both directions report to a shared completion
queue. When the first direction finishes, both sockets are shut down, which
forces the other direction's blocked read or write to return; the bridge then
waits for that second completion before returning, so no relay thread outlives
the session.

Example:
    Bridge(client_sock, backend_sock, stats=stats).run()
"""

import contextlib
import errno
import queue
import socket
import threading
from typing import Final

from loguru import logger

from mini_socks.core.config import DEFAULT_BUFFER_SIZE

from .proxy_stats import ProxyStats

# Errors that mean "this socket was closed under us", not a relay failure
CLOSED_ERRNOS: Final = frozenset({errno.EBADF, errno.ENOTCONN, errno.ESHUTDOWN})

UPSTREAM: Final = "front->back"
DOWNSTREAM: Final = "back->front"


class Bridge:
    """Relay bytes between two connected sockets until either side closes."""

    def __init__(
        self,
        front: socket.socket,
        back: socket.socket,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        stats: ProxyStats | None = None,
    ) -> None:
        self.front = front
        self.back = back
        self.buffer_size = buffer_size
        self.stats = stats
        self._done: queue.Queue[str] = queue.Queue(maxsize=2)
        self._closing = threading.Event()

    def _is_closed_error(self, exc: OSError) -> bool:
        return self._closing.is_set() or exc.errno in CLOSED_ERRNOS

    def _count(self, direction: str, size: int) -> None:
        if self.stats is None:
            return
        if direction == UPSTREAM:
            self.stats.update_bytes(upstream=size)
        else:
            self.stats.update_bytes(downstream=size)

    def _pipe(self, src: socket.socket, dst: socket.socket, direction: str) -> None:
        """Copy ``src`` to ``dst`` until EOF or error, then signal completion."""
        try:
            buf = bytearray(self.buffer_size)
            view = memoryview(buf)
            while True:
                try:
                    n = src.recv_into(buf)
                except OSError as e:
                    if not self._is_closed_error(e):
                        logger.warning(f"error reading {direction}: {e}")
                    break
                if not n:
                    break

                try:
                    dst.sendall(view[:n])
                except OSError as e:
                    if not self._is_closed_error(e):
                        logger.warning(f"error writing {direction}: {e}")
                    break
                self._count(direction, n)
        finally:
            self._done.put(direction)

    def _shutdown(self) -> None:
        """Unblock whichever direction is still running."""
        self._closing.set()
        for sock in (self.front, self.back):
            with contextlib.suppress(OSError):
                sock.shutdown(socket.SHUT_RDWR)

    def run(self) -> str:
        """Relay until one side closes and both directions have stopped.

        Returns:
            str: The direction that finished first
        """
        threads = [
            threading.Thread(target=self._pipe, args=(self.front, self.back, UPSTREAM), daemon=True),
            threading.Thread(target=self._pipe, args=(self.back, self.front, DOWNSTREAM), daemon=True),
        ]
        for thread in threads:
            thread.start()

        first = self._done.get()
        logger.debug(f"bridge {first} finished, tearing down")
        self._shutdown()

        self._done.get()
        for thread in threads:
            thread.join()
        return first
