"""Exception hierarchy for KV-DB."""


class DatabaseError(Exception):
    """Base exception for all store errors."""


class IoError(DatabaseError):
    """Raised when the backing file cannot be created, opened, read or written."""


class SerializationError(DatabaseError):
    """Raised when an entry cannot be encoded (key too long, value out of range)."""


class DeserializationError(DatabaseError):
    """Raised when the backing file holds a malformed or truncated entry stream."""
