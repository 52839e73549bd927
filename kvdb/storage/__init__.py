"""Storage module for KV-DB."""

from .codec import decode, encode
from .store import Store

__all__ = ["Store", "decode", "encode"]
