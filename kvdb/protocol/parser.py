"""
Protocol Parser Module

This module handles parsing of raw protocol commands and formatting of responses.
"""

from typing import Optional

from .commands import Command, CommandType, Response
from ..storage.codec import MAX_VALUE


class ProtocolParser:
    """
    Parser for the KV-DB text protocol.

    Protocol Format:
        Request:  <COMMAND> [ARGS...]\n
        Response: <STATUS> [DATA]\n

    Commands:
        SET <key> <value>   -> OK stored | ERROR <reason>
        GET <key>           -> OK <value> | ERROR key not found
        EXISTS <key>        -> OK 1 | OK 0
        QUIT                -> (connection closed)

    Constraints:
        - Keys: no whitespace; byte length is enforced by the store
        - Values: decimal unsigned 64-bit integer
    """

    def parse_request(self, data: str) -> Command:
        """
        Parse a raw request string into a Command object.

        Args:
            data: Raw request string (may include trailing newline)

        Returns:
            Command object representing the parsed request.
            Returns Command with type=UNKNOWN for invalid/malformed requests.

        Examples:
            >>> parser = ProtocolParser()
            >>> cmd = parser.parse_request("SET hits 42")
            >>> cmd.type == CommandType.SET
            True
            >>> cmd.key
            'hits'
            >>> cmd.value
            42
        """
        raw = data.strip()
        if not raw:
            return Command(type=CommandType.UNKNOWN, raw=raw)

        parts = raw.split()
        command_name = parts[0].upper()

        if command_name == "SET":
            return self._parse_set(parts, raw)
        if command_name == "GET":
            return self._parse_key_only(CommandType.GET, parts, raw)
        if command_name == "EXISTS":
            return self._parse_key_only(CommandType.EXISTS, parts, raw)
        if command_name == "QUIT":
            # QUIT takes no args
            if len(parts) == 1:
                return Command(type=CommandType.QUIT, raw=raw)
            return Command(type=CommandType.UNKNOWN, raw=raw)

        return Command(type=CommandType.UNKNOWN, raw=raw)

    def _parse_set(self, parts: list, raw: str) -> Command:
        """
        Parse a SET command.

        Format: SET <key> <value>
        """
        if len(parts) != 3:
            return Command(type=CommandType.UNKNOWN, raw=raw)

        value = self._parse_value(parts[2])
        if value is None:
            return Command(type=CommandType.UNKNOWN, raw=raw)

        return Command(type=CommandType.SET, key=parts[1], value=value, raw=raw)

    def _parse_key_only(self, command_type: CommandType, parts: list, raw: str) -> Command:
        """
        Parse a command taking a single key.

        Format: GET <key> | EXISTS <key>
        """
        if len(parts) != 2:
            return Command(type=CommandType.UNKNOWN, raw=raw)

        return Command(type=command_type, key=parts[1], raw=raw)

    @staticmethod
    def _parse_value(token: str) -> Optional[int]:
        # int() accepts "+5" and "1_000"; the wire format is plain digits only
        if not token.isascii() or not token.isdigit():
            return None
        value = int(token)
        if value > MAX_VALUE:
            return None
        return value

    def format_response(self, response: Response) -> str:
        """
        Format a Response object into a protocol string.

        Args:
            response: Response object to format

        Returns:
            Formatted response string WITH trailing newline.

        Examples:
            >>> parser = ProtocolParser()
            >>> parser.format_response(Response.stored())
            'OK stored\\n'
            >>> parser.format_response(Response.value_response(7))
            'OK 7\\n'
            >>> parser.format_response(Response.error("key not found"))
            'ERROR key not found\\n'
        """
        prefix = response.status.value

        # If value is provided (GET), prefer it; otherwise use message
        if response.value is not None:
            body = str(response.value)
        else:
            body = response.message

        if body:
            return f"{prefix} {body}\n"
        return f"{prefix}\n"
