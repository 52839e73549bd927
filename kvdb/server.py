#!/usr/bin/env python3
"""
KV-DB Server Entry Point

Opens the persistent store and serves it over TCP.

Usage:
    python -m kvdb.server                          # Default settings (0.0.0.0:7272)
    python -m kvdb.server --port 8080              # Custom port
    python -m kvdb.server --path /var/lib/kv.bin   # Custom backing file
    python -m kvdb.server --atomic-writes          # Save via temp file + rename
    python -m kvdb.server --debug                  # Enable debug logging

Environment Variables:
    KVDB_HOST           - Server bind address
    KVDB_PORT           - Server port
    KVDB_PATH           - Backing file path
    KVDB_ATOMIC_WRITES  - Save via temp file + rename (true/false)
    KVDB_FSYNC          - fsync after every save (true/false)
    KVDB_STRICT_KEYS    - Reject invalid UTF-8 keys on load (true/false)
    KVDB_DEBUG          - Enable debug mode (true/false)
    KVDB_LOG_LEVEL      - Log level when not in debug mode
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from .config.settings import StoreConfig, settings
from .errors import DatabaseError
from .network.tcp_server import KVServer
from .storage.store import Store


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="KV-DB: Persistent Key-Value Store Server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--host",
        type=str,
        default=settings.HOST,
        help="Host address to bind to",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=settings.PORT,
        help="Port number to listen on",
    )

    parser.add_argument(
        "--path",
        type=str,
        default=settings.DATA_PATH,
        help="Backing file for the store",
    )

    parser.add_argument(
        "--atomic-writes",
        action="store_true",
        default=settings.ATOMIC_WRITES,
        help="Write through a temp file and rename it into place",
    )

    parser.add_argument(
        "--fsync",
        action="store_true",
        default=settings.FSYNC,
        help="fsync the backing file after every save",
    )

    parser.add_argument(
        "--strict-keys",
        action="store_true",
        default=settings.STRICT_KEYS,
        help="Fail on invalid UTF-8 keys instead of replacing bad bytes",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        default=settings.DEBUG,
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def setup_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
        ]
    )


def build_store_config(args: argparse.Namespace) -> StoreConfig:
    """Translate parsed arguments into a StoreConfig."""
    return StoreConfig(
        path=args.path,
        create_dirs=settings.CREATE_DIRS,
        atomic_writes=args.atomic_writes,
        fsync=args.fsync,
        strict_keys=args.strict_keys,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the server."""
    args = parse_args(argv)

    setup_logging(debug=args.debug)
    logger = logging.getLogger(__name__)

    try:
        store = Store.open(build_store_config(args))
    except DatabaseError as exc:
        logger.error(f"Cannot open store at {args.path}: {exc}")
        return 1

    server = KVServer(store=store, host=args.host, port=args.port)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    async def shutdown(sig: signal.Signals) -> None:
        """Handle shutdown signal."""
        logger.info(f"Received signal {sig.name}, initiating shutdown...")
        await server.stop()

    # Register signal handlers (Unix only)
    if sys.platform != 'win32':
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(
                sig,
                lambda s=sig: asyncio.create_task(shutdown(s))
            )

    logger.info("Starting KV-DB server")
    logger.info(f"  Host: {args.host}")
    logger.info(f"  Port: {args.port}")
    logger.info(f"  Path: {args.path}")
    logger.info(f"  Keys loaded: {len(store)}")
    logger.info(f"  Atomic writes: {args.atomic_writes}")

    try:
        loop.run_until_complete(server.start())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        loop.run_until_complete(server.stop())
    except OSError as exc:
        logger.error(f"Server error: {exc}")
        return 1
    finally:
        loop.run_until_complete(loop.shutdown_asyncgens())
        loop.close()
        store.close()
        logger.info("Server shutdown complete")

    return 0


if __name__ == "__main__":
    sys.exit(main())
