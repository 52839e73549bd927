"""
Entry Codec

Binary encoding of the store's backing file.

File layout (no header, no checksum):

    file  := entry*
    entry := key_len (1 byte) | key (key_len bytes, UTF-8) | value (8 bytes, LE u64)

An empty buffer is a valid, empty store.
"""

import struct
from typing import Dict, Mapping

from ..errors import DeserializationError, SerializationError

KEY_LEN_FMT = "<B"
VALUE_FMT = "<Q"
KEY_LEN_SIZE = struct.calcsize(KEY_LEN_FMT)  # 1
VALUE_SIZE = struct.calcsize(VALUE_FMT)  # 8

MAX_KEY_BYTES = 0xFF
MAX_VALUE = 0xFFFFFFFFFFFFFFFF


def validate_key(key: str) -> bytes:
    """
    Check that a key can be encoded and return its UTF-8 bytes.

    Raises:
        SerializationError: if the key is not a string or is longer than 255 bytes
    """
    if not isinstance(key, str):
        raise SerializationError(f"key must be str, got {type(key).__name__}")
    try:
        raw = key.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise SerializationError(f"key is not encodable as UTF-8: {exc}") from exc
    if len(raw) > MAX_KEY_BYTES:
        raise SerializationError(
            f"key is {len(raw)} bytes, maximum is {MAX_KEY_BYTES}"
        )
    return raw


def validate_value(value: int) -> int:
    """
    Check that a value fits in an unsigned 64-bit integer.

    Raises:
        SerializationError: if the value is not an int or is out of range
    """
    # bool is an int subclass
    if not isinstance(value, int) or isinstance(value, bool):
        raise SerializationError(f"value must be int, got {type(value).__name__}")
    if value < 0 or value > MAX_VALUE:
        raise SerializationError(f"value {value} is outside 0..{MAX_VALUE}")
    return value


def encode_entry(key: str, value: int) -> bytes:
    """Encode a single (key, value) pair."""
    raw = validate_key(key)
    return (
        struct.pack(KEY_LEN_FMT, len(raw))
        + raw
        + struct.pack(VALUE_FMT, validate_value(value))
    )


def encode(entries: Mapping[str, int]) -> bytes:
    """
    Encode a whole mapping into the file format.

    Entries are written in the mapping's iteration order.

    Raises:
        SerializationError: if any key or value violates the format limits
    """
    buffer = bytearray()
    for key, value in entries.items():
        buffer += encode_entry(key, value)
    return bytes(buffer)


class _Cursor:
    """Bounds-checked reader over an immutable buffer."""

    def __init__(self, data: bytes):
        self._view = memoryview(data)
        self.offset = 0

    def at_end(self) -> bool:
        return self.offset >= len(self._view)

    def take(self, size: int, what: str) -> bytes:
        end = self.offset + size
        if end > len(self._view):
            raise DeserializationError(
                f"truncated entry at offset {self.offset}: "
                f"need {size} bytes for {what}, "
                f"{len(self._view) - self.offset} remaining"
            )
        chunk = self._view[self.offset:end].tobytes()
        self.offset = end
        return chunk


def decode(data: bytes, strict_keys: bool = False) -> Dict[str, int]:
    """
    Decode a file buffer into a key -> value mapping.

    Invalid UTF-8 in keys is replaced with U+FFFD unless ``strict_keys`` is set.
    A key that appears more than once keeps its last value.

    Raises:
        DeserializationError: on a truncated entry, or bad key bytes in strict mode
    """
    cursor = _Cursor(data)
    entries: Dict[str, int] = {}

    while not cursor.at_end():
        start = cursor.offset
        (key_len,) = struct.unpack(KEY_LEN_FMT, cursor.take(KEY_LEN_SIZE, "key length"))
        raw_key = cursor.take(key_len, "key")
        (value,) = struct.unpack(VALUE_FMT, cursor.take(VALUE_SIZE, "value"))

        try:
            key = raw_key.decode("utf-8", errors="strict" if strict_keys else "replace")
        except UnicodeDecodeError as exc:
            raise DeserializationError(
                f"invalid UTF-8 key in entry at offset {start}: {exc}"
            ) from exc

        entries[key] = value

    return entries
