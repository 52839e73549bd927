"""
KV-DB Configuration Settings

This module contains all configuration constants for the KV-DB store and
its TCP front end. Values can be overridden through environment variables.
"""

import os
from dataclasses import dataclass
from typing import Optional


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() == "true"


@dataclass
class Settings:
    """Process-wide configuration settings."""

    # Network settings
    HOST: str = os.environ.get("KVDB_HOST", "0.0.0.0")
    PORT: int = int(os.environ.get("KVDB_PORT", "7272"))

    # Storage settings
    DATA_PATH: str = os.environ.get("KVDB_PATH", "data/database.bin")
    CREATE_DIRS: bool = _env_flag("KVDB_CREATE_DIRS", "true")
    ATOMIC_WRITES: bool = _env_flag("KVDB_ATOMIC_WRITES")
    FSYNC: bool = _env_flag("KVDB_FSYNC")
    STRICT_KEYS: bool = _env_flag("KVDB_STRICT_KEYS")

    # Connection settings
    READ_BUFFER_SIZE: int = 4096

    # Logging settings
    DEBUG: bool = _env_flag("KVDB_DEBUG")
    LOG_LEVEL: str = os.environ.get("KVDB_LOG_LEVEL", "INFO")


@dataclass
class StoreConfig:
    """
    Configuration for a single Store instance.

    Attributes:
        path: Location of the backing file
        create_dirs: Create missing parent directories on open
        atomic_writes: Save via temp file + rename instead of in-place rewrite
        fsync: Force written data to disk before a save returns
        strict_keys: Reject invalid UTF-8 key bytes instead of replacing them
    """

    path: str
    create_dirs: bool = True
    atomic_writes: bool = False
    fsync: bool = False
    strict_keys: bool = False

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "StoreConfig":
        """Build a StoreConfig from process settings (defaults to the global instance)."""
        source = source if source is not None else settings
        return cls(
            path=source.DATA_PATH,
            create_dirs=source.CREATE_DIRS,
            atomic_writes=source.ATOMIC_WRITES,
            fsync=source.FSYNC,
            strict_keys=source.STRICT_KEYS,
        )


# Global settings instance
settings = Settings()
