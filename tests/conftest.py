"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests.
"""

import asyncio
import socket
import pytest
import pytest_asyncio
from contextlib import closing
from pathlib import Path
from typing import AsyncGenerator, Iterator

from kvdb.config.settings import StoreConfig
from kvdb.network.tcp_server import KVServer
from kvdb.protocol.parser import ProtocolParser
from kvdb.storage.store import Store


def find_free_port() -> int:
    """Find an available port for testing."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(('', 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# ============================================================================
# Store Fixtures
# ============================================================================

@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Path of a backing file that does not exist yet."""
    return tmp_path / "data" / "database.bin"


@pytest.fixture
def config(db_path: Path) -> StoreConfig:
    """Default in-place rewrite configuration."""
    return StoreConfig(path=str(db_path))


@pytest.fixture
def store(config: StoreConfig) -> Iterator[Store]:
    """Create a fresh Store over a new file."""
    db = Store.open(config)
    yield db
    db.close()


@pytest.fixture
def atomic_store(db_path: Path) -> Iterator[Store]:
    """Create a fresh Store that saves through temp file + rename."""
    db = Store.open(StoreConfig(path=str(db_path), atomic_writes=True, fsync=True))
    yield db
    db.close()


@pytest.fixture
def reopen(config: StoreConfig):
    """
    Factory fixture to open additional stores over the same file.

    Usage:
        def test_something(store, reopen):
            store.close()
            again = reopen()
    """
    opened = []

    def factory() -> Store:
        db = Store.open(config)
        opened.append(db)
        return db

    yield factory
    for db in opened:
        db.close()


# ============================================================================
# Protocol Fixtures
# ============================================================================

@pytest.fixture
def parser() -> ProtocolParser:
    """Create a ProtocolParser instance."""
    return ProtocolParser()


# ============================================================================
# Server Fixtures
# ============================================================================

@pytest.fixture
def server_port() -> int:
    """Get a free port for server testing."""
    return find_free_port()


@pytest_asyncio.fixture
async def server(store: Store, server_port: int) -> AsyncGenerator[KVServer, None]:
    """
    Create and start a server instance for testing.

    This fixture:
    1. Creates a KVServer over the ``store`` fixture on a random free port
    2. Starts it in a background task
    3. Yields the server for testing
    4. Cleans up after the test
    """
    srv = KVServer(store=store, host='127.0.0.1', port=server_port)

    server_task = asyncio.create_task(srv.start())

    # Wait for server to be ready
    await asyncio.sleep(0.1)

    yield srv

    await srv.stop()
    server_task.cancel()
    try:
        await server_task
    except asyncio.CancelledError:
        pass


# ============================================================================
# Client Fixtures
# ============================================================================

class AsyncClient:
    """
    Helper class for testing server interactions.

    Usage:
        async with AsyncClient('127.0.0.1', 7272) as client:
            response = await client.send_command("SET key 1")
            assert response == "OK stored"
    """

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self.reader = None
        self.writer = None

    async def connect(self) -> None:
        """Establish connection to server."""
        self.reader, self.writer = await asyncio.open_connection(
            self.host, self.port
        )

    async def disconnect(self) -> None:
        """Close connection to server."""
        if self.writer:
            self.writer.close()
            try:
                await self.writer.wait_closed()
            except ConnectionError:
                pass

    async def send_command(self, command: str) -> str:
        """
        Send a command and receive the response.

        Args:
            command: Command string (newline will be added if missing)

        Returns:
            Response string (stripped of trailing newline)
        """
        if not command.endswith('\n'):
            command += '\n'

        self.writer.write(command.encode())
        await self.writer.drain()

        response = await self.reader.readline()
        return response.decode().strip()

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()


@pytest.fixture
def client_factory(server_port: int):
    """
    Factory fixture to create test clients.

    Usage:
        async def test_something(server, client_factory):
            async with client_factory() as client:
                response = await client.send_command("GET key")
    """
    def factory() -> AsyncClient:
        return AsyncClient('127.0.0.1', server_port)
    return factory


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
