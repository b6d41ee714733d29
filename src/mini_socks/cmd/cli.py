"""Command-line interface for the SOCKS5 proxy server.

This module provides the command-line entry point, handling:
- The positional listen address (``host:port``)
- Logging configuration
- Optional concurrency cap, relay buffer size and DNS servers
- The optional live statistics panel
- Fatal startup errors

Example:
    # Run from command line:
    $ mini-socks 0.0.0.0:1080 --max-connections 512 --debug
"""

from pathlib import Path

import typer
from loguru import logger
from rich.console import Console

from mini_socks import __version__
from mini_socks.core.config import DEFAULT_BUFFER_SIZE, ProxyConfig
from mini_socks.core.exceptions import ListenError
from mini_socks.core.proxy import create_proxy_server
from mini_socks.core.utils.log_config import setup_logging

USAGE = "Usage: mini-socks LISTEN"

console = Console()
app = typer.Typer(help="Minimal SOCKS5 proxy server (no-auth, CONNECT only)", add_completion=False)


def version_callback(value: bool) -> None:
    """Show version information."""
    if value:
        console.print(f"[cyan]mini-socks v{__version__}[/cyan]")
        raise typer.Exit


@app.command()
def serve(
    listen: str | None = typer.Argument(None, help="Address to listen on, e.g. 0.0.0.0:1080"),
    debug: bool = typer.Option(default=False, help="Enable debug logging"),
    log_file: Path | None = typer.Option(None, "--log-file", help="Also write logs to this file"),
    max_connections: int | None = typer.Option(
        None, "--max-connections", min=1, help="Cap on concurrent sessions (default: unbounded)"
    ),
    buffer_size: int = typer.Option(
        DEFAULT_BUFFER_SIZE, "--buffer-size", min=1, help="Relay buffer size in bytes"
    ),
    nameserver: list[str] | None = typer.Option(
        None, "--nameserver", help="DNS server for domain targets (repeatable)"
    ),
    ui: bool = typer.Option(default=False, help="Show live statistics"),
    version: bool = typer.Option(
        False, "--version", callback=version_callback, is_eager=True, help="Show version and exit"
    ),
):
    """Start the SOCKS5 proxy server on LISTEN."""
    if listen is None:
        console.print(USAGE)
        return

    setup_logging(debug=debug, log_file=log_file)

    try:
        config = ProxyConfig.from_listen_address(
            listen,
            max_connections=max_connections,
            buffer_size=buffer_size,
            nameservers=tuple(nameserver or ()),
        )
        create_proxy_server(config, show_ui=ui)
    except ListenError as e:
        logger.error(str(e))
        console.print(f"[red]Error: {e}")
        raise typer.Exit(code=1) from e


if __name__ == "__main__":
    app()
