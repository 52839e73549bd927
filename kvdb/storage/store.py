"""
Persistent Store Module

This module implements the file-backed key-value store.

The whole mapping lives in memory and every successful ``set`` rewrites the
backing file in full before returning, so the file always decodes to the
current in-memory state.
"""

import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import BinaryIO, Dict, Any, Iterator, List, Optional, Tuple

from ..config.settings import StoreConfig
from ..errors import DatabaseError, IoError
from .codec import decode, encode, validate_key, validate_value

logger = logging.getLogger(__name__)

_MISSING = object()


class Store:
    """
    File-backed key-value store mapping text keys to unsigned 64-bit integers.

    Reads are served from memory. Writes update memory and then re-encode the
    whole mapping into the backing file (full-file rewrite).

    The store owns its file handle until ``close()`` is called. There is no
    locking: two stores over the same path, or one store shared between
    threads without external synchronization, is unsupported.

    Usage:
        with Store.open(StoreConfig(path="data/db.bin")) as db:
            db.set("hits", 1)
            db.get("hits")  # -> 1

    Attributes:
        config: The StoreConfig this store was opened with
    """

    def __init__(self, config: Optional[StoreConfig] = None):
        """
        Open (or create) the backing file and load it into memory.

        Args:
            config: Store configuration (default built from settings)

        Raises:
            IoError: if the file cannot be created, opened or read
            DeserializationError: if the file content is malformed
        """
        self.config = config if config is not None else StoreConfig.from_settings()
        self._path = Path(self.config.path)
        self._data: Dict[str, int] = {}
        self._file: Optional[BinaryIO] = None

        if not self._path.exists():
            self._create()

        self._file = self._open_handle()
        try:
            self._load()
        except DatabaseError:
            self.close()
            raise

    @classmethod
    def open(cls, config: Optional[StoreConfig] = None) -> "Store":
        """Open a store at ``config.path``; see ``__init__``."""
        return cls(config)

    # ------------------------------------------------------------------
    # File lifecycle
    # ------------------------------------------------------------------

    def _create(self) -> None:
        """Create the backing file and persist an empty mapping into it."""
        try:
            if self.config.create_dirs:
                self._path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self._path, "w+b")
        except OSError as exc:
            raise IoError(f"cannot create {self._path}: {exc}") from exc

        logger.info(f"Creating new store file at {self._path}")
        try:
            self.save()
        finally:
            self.close()

    def _open_handle(self) -> BinaryIO:
        try:
            return open(self._path, "r+b")
        except OSError as exc:
            raise IoError(f"cannot open {self._path}: {exc}") from exc

    def _load(self) -> None:
        """Decode the full file content into the in-memory mapping."""
        try:
            self._file.seek(0)
            data = self._file.read()
        except OSError as exc:
            raise IoError(f"cannot read {self._path}: {exc}") from exc

        self._data = decode(data, strict_keys=self.config.strict_keys)
        logger.debug(f"Loaded {len(self._data)} entries ({len(data)} bytes) from {self._path}")

    def save(self) -> None:
        """
        Re-encode the whole mapping and overwrite the backing file.

        Raises:
            SerializationError: if an entry cannot be encoded
            IoError: if the store is closed or the write fails
        """
        if self._file is None:
            raise IoError(f"store at {self._path} is closed")

        buffer = encode(self._data)
        try:
            if self.config.atomic_writes:
                self._replace_file(buffer)
            else:
                self._rewrite_in_place(buffer)
        except OSError as exc:
            raise IoError(f"cannot write {self._path}: {exc}") from exc

        logger.debug(f"Saved {len(self._data)} entries ({len(buffer)} bytes) to {self._path}")

    def _rewrite_in_place(self, buffer: bytes) -> None:
        # No crash protection: an interrupted write leaves a partial file.
        self._file.truncate(0)
        self._file.seek(0)
        self._file.write(buffer)
        self._file.flush()
        if self.config.fsync:
            os.fsync(self._file.fileno())

    def _replace_file(self, buffer: bytes) -> None:
        """
        Write to a sibling temp file and rename it over the backing file.

        The temp file's handle becomes the store's handle, so nothing can
        fail between the rename and the end of the save.
        """
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
        )
        tmp = os.fdopen(fd, "r+b")
        try:
            # mkstemp creates 0600; keep the backing file's permissions
            os.chmod(tmp_name, stat.S_IMODE(os.stat(self._path).st_mode))
            tmp.write(buffer)
            tmp.flush()
            if self.config.fsync:
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self._path)
        except OSError:
            tmp.close()
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        previous, self._file = self._file, tmp
        try:
            previous.close()
        except OSError as exc:
            # The new file is already committed
            logger.warning(f"Failed to close replaced handle for {self._path}: {exc}")

    def close(self) -> None:
        """Release the file handle. Safe to call more than once."""
        if self._file is None:
            return
        try:
            self._file.close()
        finally:
            self._file = None

    @property
    def closed(self) -> bool:
        return self._file is None

    @property
    def path(self) -> Path:
        return self._path

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Data operations
    # ------------------------------------------------------------------

    def set(self, key: str, value: int) -> None:
        """
        Insert or overwrite a key, then persist the whole mapping.

        Args:
            key: Text key, at most 255 bytes once UTF-8 encoded
            value: Unsigned 64-bit integer

        Raises:
            SerializationError: if the key or value cannot be encoded
                (nothing is changed in memory or on disk)
            IoError: if persisting fails (the in-memory change is rolled back)
        """
        validate_key(key)
        validate_value(value)

        previous = self._data.get(key, _MISSING)
        self._data[key] = value
        try:
            self.save()
        except DatabaseError:
            if previous is _MISSING:
                del self._data[key]
            else:
                self._data[key] = previous
            raise

    def get(self, key: str) -> Optional[int]:
        """
        Look up a key in memory.

        Returns:
            The stored value, or None if the key is absent
        """
        return self._data.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data))

    def keys(self) -> List[str]:
        return list(self._data)

    def items(self) -> List[Tuple[str, int]]:
        """Snapshot of all (key, value) pairs."""
        return list(self._data.items())

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the store.

        Returns:
            Dictionary containing:
            - total_keys: Number of keys in memory
            - file_size: Size of the backing file in bytes
            - path: Backing file location
            - atomic_writes: Whether saves go through temp file + rename
        """
        return {
            "total_keys": len(self._data),
            "file_size": self._path.stat().st_size if self._path.exists() else 0,
            "path": str(self._path),
            "atomic_writes": self.config.atomic_writes,
        }
