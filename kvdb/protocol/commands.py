"""
Protocol Command and Response Definitions

This module defines the data structures for protocol commands and responses.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class CommandType(Enum):
    """Enumeration of supported command types."""
    SET = auto()
    GET = auto()
    EXISTS = auto()
    QUIT = auto()
    UNKNOWN = auto()


class ResponseStatus(Enum):
    """Enumeration of response statuses."""
    OK = "OK"
    ERROR = "ERROR"


@dataclass
class Command:
    """
    Represents a parsed protocol command.

    Attributes:
        type: The type of command (SET, GET, EXISTS, QUIT, UNKNOWN)
        key: The key for the operation (empty for QUIT)
        value: The integer value for SET operations (None otherwise)
        raw: The original raw command string
    """
    type: CommandType
    key: str = ""
    value: Optional[int] = None
    raw: str = ""

    @property
    def is_valid(self) -> bool:
        """Check if the command is valid for its type."""
        if self.type == CommandType.UNKNOWN:
            return False
        if self.type == CommandType.QUIT:
            return True
        if self.type in (CommandType.GET, CommandType.EXISTS):
            return bool(self.key)
        if self.type == CommandType.SET:
            return bool(self.key) and self.value is not None
        return False


@dataclass
class Response:
    """
    Represents a protocol response.

    Attributes:
        status: OK or ERROR
        message: Response message or error description
        value: The value returned (for GET operations)
    """
    status: ResponseStatus
    message: str = ""
    value: Optional[int] = None

    @classmethod
    def ok(cls, message: str = "", value: Optional[int] = None) -> "Response":
        """Create a successful response."""
        return cls(status=ResponseStatus.OK, message=message, value=value)

    @classmethod
    def error(cls, message: str) -> "Response":
        """Create an error response."""
        return cls(status=ResponseStatus.ERROR, message=message)

    @classmethod
    def stored(cls) -> "Response":
        """Create a 'stored' response for SET operations."""
        return cls.ok(message="stored")

    @classmethod
    def key_not_found(cls) -> "Response":
        """Create a 'key not found' error response."""
        return cls.error(message="key not found")

    @classmethod
    def exists_response(cls, exists: bool) -> "Response":
        """Create an EXISTS response."""
        return cls.ok(message="1" if exists else "0")

    @classmethod
    def value_response(cls, value: int) -> "Response":
        """Create a GET response with a value."""
        return cls.ok(value=value)
