"""Peer-to-peer distributed file store with encrypted replication."""

__version__ = "0.1.0"
__all__ = ["cipher", "store", "message", "transport", "server", "cli"]