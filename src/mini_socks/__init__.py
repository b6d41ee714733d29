"""Minimal SOCKS5 proxy server (no-auth, CONNECT, IPv4 and domain names)."""

import pathlib
import tomllib


def get_version() -> str:
    """Read version from pyproject.toml."""
    current_dir = pathlib.Path(__file__).parent
    # Look for pyproject.toml in parent directories
    for parent in [current_dir, *current_dir.parents]:
        pyproject_path = parent / "pyproject.toml"
        if pyproject_path.exists():
            with pyproject_path.open("rb") as f:
                pyproject_data = tomllib.load(f)
            if pyproject_data.get("project", {}).get("name") == "mini-socks":
                return pyproject_data["project"]["version"]

    # Installed without the source tree
    try:
        from importlib.metadata import PackageNotFoundError, version

        return version("mini-socks")
    except PackageNotFoundError:
        return "0.0.0"


__version__ = get_version()
