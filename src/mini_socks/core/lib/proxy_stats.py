"""Statistics tracking for the SOCKS5 proxy server.

This module keeps thread-safe counters shared by every session thread:
- Active and total session counts
- Bytes relayed in each direction
- Short bandwidth history for the live display

Example:
    stats = ProxyStats()
    stats.session_started()
    stats.update_bytes(upstream=1024, downstream=2048)
"""

import threading
import time
from collections import deque
from datetime import UTC, datetime

BANDWIDTH_WINDOW = 5  # Seconds averaged by get_bandwidth


class ProxyStats:
    """Thread-safe statistics tracker for the proxy server.

    All operations are guarded by an internal lock; instances are shared by
    the acceptor and every session it spawns.
    """

    def __init__(self) -> None:
        self.active_sessions = 0
        self.total_sessions = 0
        self.bytes_upstream = 0  # front -> back
        self.bytes_downstream = 0  # back -> front
        self.bandwidth_history: deque[tuple[int, float]] = deque()
        self.start_time = datetime.now(tz=UTC)
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        """Drop samples older than the bandwidth window."""
        cutoff = now - BANDWIDTH_WINDOW
        while self.bandwidth_history and self.bandwidth_history[0][1] <= cutoff:
            self.bandwidth_history.popleft()

    def update_bytes(self, upstream: int = 0, downstream: int = 0) -> None:
        """Record relayed bytes.

        Args:
            upstream: Bytes copied from the client to the backend
            downstream: Bytes copied from the backend to the client
        """
        now = time.monotonic()
        with self._lock:
            self.bytes_upstream += upstream
            self.bytes_downstream += downstream
            self.bandwidth_history.append((upstream + downstream, now))
            self._prune(now)

    def get_bandwidth(self) -> float:
        """Average relay throughput over the last few seconds, in bytes/second."""
        with self._lock:
            self._prune(time.monotonic())
            total_bytes = sum(bytes_ for bytes_, _ in self.bandwidth_history)
        return total_bytes / BANDWIDTH_WINDOW

    def session_started(self) -> None:
        with self._lock:
            self.active_sessions += 1
            self.total_sessions += 1

    def session_ended(self) -> None:
        with self._lock:
            self.active_sessions -= 1

    @property
    def total_bytes(self) -> int:
        with self._lock:
            return self.bytes_upstream + self.bytes_downstream

    def uptime(self) -> float:
        return (datetime.now(tz=UTC) - self.start_time).total_seconds()
