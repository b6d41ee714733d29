"""Utility functions and helpers."""

from mini_socks.core.utils.log_config import setup_logging
from mini_socks.core.utils.utils import format_bytes

__all__ = ["format_bytes", "setup_logging"]
