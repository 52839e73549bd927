"""
Tests for the Async TCP Server

These tests verify the KVServer class:
- Server starts and accepts connections
- Commands are executed against the persistent store
- Store errors are reported per request
- Disconnections are handled gracefully

Run with: python -m pytest tests/test_server.py -v
"""

import asyncio

import pytest
from kvdb.storage.codec import decode


@pytest.mark.asyncio
class TestServerConnection:
    """Test server connection handling."""

    async def test_server_accepts_connection(self, server, client_factory):
        """Test that server accepts connections."""
        async with client_factory() as client:
            assert client.reader is not None
            assert client.writer is not None
        assert server.is_running()

    async def test_server_handles_disconnect(self, server, server_port):
        """Test server handles client disconnect gracefully."""
        reader, writer = await asyncio.open_connection('127.0.0.1', server_port)

        writer.write(b"SET key 5\n")
        await writer.drain()
        response = await reader.readline()
        assert response == b"OK stored\n"

        writer.close()
        await writer.wait_closed()

        reader, writer = await asyncio.open_connection('127.0.0.1', server_port)
        writer.write(b"GET key\n")
        await writer.drain()
        assert await reader.readline() == b"OK 5\n"
        writer.close()
        await writer.wait_closed()

    async def test_server_handles_quit(self, server, server_port):
        """QUIT closes the connection from the server side."""
        reader, writer = await asyncio.open_connection('127.0.0.1', server_port)

        writer.write(b"QUIT\n")
        await writer.drain()

        assert await asyncio.wait_for(reader.read(), timeout=1.0) == b""

        writer.close()
        await writer.wait_closed()

    async def test_invalid_encoding(self, server, server_port):
        """Non-UTF-8 input gets an error but keeps the connection open."""
        reader, writer = await asyncio.open_connection('127.0.0.1', server_port)

        writer.write(b"GET \xff\xfe\n")
        await writer.drain()
        assert await reader.readline() == b"ERROR invalid encoding\n"

        writer.write(b"EXISTS a\n")
        await writer.drain()
        assert await reader.readline() == b"OK 0\n"

        writer.close()
        await writer.wait_closed()


@pytest.mark.asyncio
class TestServerCommands:
    """Test command execution through server."""

    async def test_set_command(self, server, client_factory):
        async with client_factory() as client:
            assert await client.send_command("SET key1 10") == "OK stored"

    async def test_get_command_found(self, server, client_factory):
        async with client_factory() as client:
            await client.send_command("SET key1 10")
            assert await client.send_command("GET key1") == "OK 10"

    async def test_get_command_not_found(self, server, client_factory):
        async with client_factory() as client:
            assert await client.send_command("GET missing") == "ERROR key not found"

    async def test_exists_command(self, server, client_factory):
        async with client_factory() as client:
            assert await client.send_command("EXISTS k") == "OK 0"
            await client.send_command("SET k 0")
            assert await client.send_command("EXISTS k") == "OK 1"

    async def test_invalid_command(self, server, client_factory):
        async with client_factory() as client:
            assert await client.send_command("DELETE k") == "ERROR invalid command"
            assert await client.send_command("SET k -1") == "ERROR invalid command"

    async def test_key_too_long(self, server, client_factory, store):
        """A serialization failure becomes an ERROR line."""
        async with client_factory() as client:
            response = await client.send_command(f"SET {'k' * 256} 1")

        assert response.startswith("ERROR")
        assert "255" in response
        assert len(store) == 0
        assert server.get_stats()["failed_writes"] == 1

    async def test_set_writes_through_to_disk(self, server, client_factory, db_path):
        """The backing file matches after the response arrives."""
        async with client_factory() as client:
            await client.send_command("SET a 1")
            await client.send_command("SET b 2")

        assert decode(db_path.read_bytes()) == {"a": 1, "b": 2}

    async def test_concurrent_clients(self, server, client_factory, store):
        """Several clients writing distinct keys all land in the store."""
        async def worker(n: int) -> None:
            async with client_factory() as client:
                for i in range(10):
                    assert await client.send_command(f"SET c{n}:{i} {i}") == "OK stored"

        await asyncio.gather(*(worker(n) for n in range(5)))

        assert len(store) == 50
        assert store.get("c4:9") == 9

    async def test_stats(self, server, client_factory):
        async with client_factory() as client:
            await client.send_command("SET a 1")
            await client.send_command("GET a")
            await client.send_command("BOGUS")

        stats = server.get_stats()
        assert stats["total_connections"] == 1
        assert stats["total_requests"] == 2
        assert stats["store_stats"]["total_keys"] == 1
