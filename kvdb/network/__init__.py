"""Network module for KV-DB."""

from .tcp_server import KVServer

__all__ = ["KVServer"]
