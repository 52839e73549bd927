"""
KV-DB: Persistent Key-Value Store

Text keys mapped to unsigned 64-bit integers, held in memory and mirrored
to a single binary file that is rewritten in full on every change.
"""

from .config.settings import StoreConfig
from .errors import DatabaseError, DeserializationError, IoError, SerializationError
from .storage.store import Store

__version__ = "1.0.0"

__all__ = [
    "DatabaseError",
    "DeserializationError",
    "IoError",
    "SerializationError",
    "Store",
    "StoreConfig",
]
