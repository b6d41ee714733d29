"""Live statistics panel for the SOCKS5 proxy server.

Renders a small rich panel with the listen address, bandwidth, session counts
and total bytes relayed. It runs in a daemon thread so the accept loop keeps
the main thread.

Example:
    ui, thread = create_proxy_ui("127.0.0.1:1080", server.stats)
    thread.start()
    ...
    ui.stop()
"""

import threading

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.spinner import Spinner
from rich.table import Table
from rich.text import Text

from mini_socks.core.utils.utils import format_bytes

from .proxy_stats import ProxyStats

console = Console()


class ProxyUI:
    def __init__(self, listen_address: str, stats: ProxyStats, refresh_rate: float = 1.0) -> None:
        self.listen_address = listen_address
        self.stats = stats
        self._refresh_rate = refresh_rate
        self._stop = threading.Event()
        self._spinner = Spinner("dots")

    def _generate_table(self) -> Table:
        table = Table(show_header=False, box=None)
        table.add_column("Property", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Bandwidth", f"{format_bytes(self.stats.get_bandwidth())}/s")
        table.add_row("Active Sessions", str(self.stats.active_sessions))
        table.add_row("Total Sessions", str(self.stats.total_sessions))
        table.add_row("Total Data Relayed", format_bytes(self.stats.total_bytes))
        table.add_row("Uptime", f"{self.stats.uptime():.0f}s")
        return table

    def _generate_display(self) -> Panel:
        title = Text(f"SOCKS5 Proxy: {self.listen_address}", style="bold cyan")
        return Panel(
            self._generate_table(),
            title=title,
            subtitle="Press Ctrl+C to exit",
            border_style="blue",
        )

    def stop(self) -> None:
        self._stop.set()

    def run(self) -> None:
        """Refresh the panel until stopped."""
        with Live(self._generate_display(), console=console, refresh_per_second=2, transient=True) as live:
            while not self._stop.wait(self._refresh_rate):
                live.update(self._generate_display())


def create_proxy_ui(listen_address: str, stats: ProxyStats) -> tuple[ProxyUI, threading.Thread]:
    """Create the UI and the (unstarted) daemon thread that runs it."""
    ui = ProxyUI(listen_address, stats)
    thread = threading.Thread(target=ui.run, name="proxy-ui", daemon=True)
    return ui, thread
