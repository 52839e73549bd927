"""Configuration module for KV-DB."""

from .settings import Settings, StoreConfig

__all__ = ["Settings", "StoreConfig"]
