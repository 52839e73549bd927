"""
Async TCP Server Module

This module exposes a Store over the KV-DB line protocol.

All store calls run synchronously on the event loop thread, so commands from
different connections never interleave inside a single ``set``.
"""

import asyncio
import logging
from asyncio import StreamReader, StreamWriter
from typing import Optional

from ..config.settings import settings
from ..errors import DatabaseError
from ..protocol.commands import Command, CommandType, Response
from ..protocol.parser import ProtocolParser
from ..storage.store import Store

logger = logging.getLogger(__name__)


class KVServer:
    """
    Asynchronous TCP server for a KV-DB store.

    Each client connection is handled in its own coroutine and may send
    any number of commands until it disconnects or sends QUIT.

    Usage:
        server = KVServer(host='0.0.0.0', port=7272, store=Store.open(config))
        await server.start()  # Runs forever

    Attributes:
        host: Server bind address (e.g., '0.0.0.0')
        port: Server port number (e.g., 7272)
        store: The Store instance shared by all connections
        parser: The ProtocolParser for parsing commands
    """

    def __init__(
            self,
            store: Store,
            host: str = None,
            port: int = None,
    ):
        """
        Initialize the server.

        Args:
            store: Open Store instance to serve
            host: Bind address (default from settings)
            port: Port number (default from settings)
        """
        self.store = store
        self.host = host if host is not None else settings.HOST
        self.port = port if port is not None else settings.PORT
        self.parser = ProtocolParser()

        # Server state
        self._server: Optional[asyncio.Server] = None
        self._running = False
        self._connection_count = 0
        self._total_requests = 0
        self._failed_writes = 0

    async def handle_client(
            self,
            reader: StreamReader,
            writer: StreamWriter
    ) -> None:
        """
        Handle a single client connection.

        Reads commands line by line, executes them against the store and
        writes one response line per command, until the client disconnects
        or sends QUIT.

        Args:
            reader: StreamReader for reading from the client
            writer: StreamWriter for writing to the client
        """
        addr = writer.get_extra_info('peername')
        self._connection_count += 1
        logger.debug(f"Client connected: {addr}")

        try:
            while True:
                data = await reader.readline()
                if not data:
                    logger.debug(f"Client disconnected: {addr}")
                    break

                try:
                    raw = data.decode().rstrip('\r\n')
                except UnicodeDecodeError:
                    response = Response.error("invalid encoding")
                    writer.write(self.parser.format_response(response).encode())
                    await writer.drain()
                    continue

                command = self.parser.parse_request(raw)

                if command.type == CommandType.QUIT:
                    logger.debug(f"Client requested quit: {addr}")
                    break

                if not command.is_valid:
                    response = Response.error("invalid command")
                else:
                    self._total_requests += 1
                    response = self._execute_command(command)

                writer.write(self.parser.format_response(response).encode())
                await writer.drain()

        except ConnectionResetError:
            logger.debug(f"Connection reset by client: {addr}")
        except Exception as exc:  # Log unexpected errors but keep server alive
            logger.exception(f"Error handling client {addr}: {exc}")
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:
                pass

    def _execute_command(self, command: Command) -> Response:
        """
        Execute a parsed command on the store.

        Args:
            command: The Command object to execute

        Returns:
            Response object with the result
        """
        if command.type == CommandType.SET:
            try:
                self.store.set(command.key, command.value)
            except DatabaseError as exc:
                self._failed_writes += 1
                logger.warning(f"SET {command.key!r} failed: {exc}")
                return Response.error(str(exc))
            return Response.stored()

        if command.type == CommandType.GET:
            value = self.store.get(command.key)
            return Response.value_response(value) if value is not None else Response.key_not_found()

        if command.type == CommandType.EXISTS:
            return Response.exists_response(command.key in self.store)

        return Response.error("invalid command")

    async def start(self) -> None:
        """
        Start the server and begin accepting connections.

        Runs until cancelled or until ``stop()`` is called.

        Example:
            server = KVServer(store, port=7272)
            asyncio.run(server.start())
        """
        if self._running:
            return

        self._server = await asyncio.start_server(
            self.handle_client,
            self.host,
            self.port,
            limit=settings.READ_BUFFER_SIZE,
        )
        self._running = True

        addrs = ', '.join(str(sock.getsockname()) for sock in self._server.sockets or [])
        logger.info(f"Serving {self.store.path} on {addrs}")

        try:
            async with self._server:
                await self._server.serve_forever()
        except asyncio.CancelledError:
            # Expected during shutdown/fixture cleanup
            logger.debug("Server start cancelled")
        finally:
            self._running = False

    async def stop(self) -> None:
        """
        Stop the server gracefully.

        Closes the listening socket and waits for it to shut down. The store
        is left open; its owner is responsible for closing it.
        """
        if self._server is None:
            return

        self._server.close()
        try:
            await self._server.wait_closed()
        finally:
            self._server = None
            self._running = False

    def is_running(self) -> bool:
        """Check if the server is currently running."""
        return self._running

    def get_stats(self) -> dict:
        """
        Get server statistics.

        Returns:
            Dictionary with server stats including connection counts,
            request counts, and store statistics.
        """
        return {
            "running": self._running,
            "host": self.host,
            "port": self.port,
            "total_connections": self._connection_count,
            "total_requests": self._total_requests,
            "failed_writes": self._failed_writes,
            "store_stats": self.store.get_stats(),
        }
