"""Command line interface modules.

This package provides the command-line entry point for:
- Parsing the listen address
- Configuring logging
- Starting the proxy server and optional statistics display
- Reporting fatal startup errors
"""
