"""Core proxy server implementation.

This package contains the core components of the SOCKS5 proxy server:
- Wire codec for addresses and reply frames
- Backend connector
- Bidirectional bridge
- Handshake state machine (per-connection handler)
- Threaded acceptor
- Statistics tracking and the optional live display
- Exception handling and configuration

The core package keeps the protocol implementation separate from the
command-line interface.
"""
