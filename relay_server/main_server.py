#!/usr/bin/env python3
"""
Broadcast Relay Server - Main Entry Point

Accepts client connections, runs one session task per connection and
relays every chat line to all active clients.
"""

import argparse
import asyncio
import sys
from typing import Optional

from relay_server.registry import Registry
from relay_server.relay import RelayLoop
from relay_server.session import Session
from relay_server.utils.config import ServerConfig
from relay_server.utils.logger import logger


class RelayStartupError(Exception):
    """The listening endpoint could not be bound."""


class RelayServer:
    """Listener that spawns a session for every accepted connection."""

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.registry = Registry()
        self.relay = RelayLoop(self.registry)
        self.server: Optional[asyncio.AbstractServer] = None

    @property
    def bound_port(self) -> Optional[int]:
        """Port actually bound (useful when configured with port 0)."""
        if not self.server or not self.server.sockets:
            return None
        return self.server.sockets[0].getsockname()[1]

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """Handle individual client connection."""
        session = Session(reader, writer, self.registry, self.relay)
        await session.run()

    async def listen(self):
        """Bind the listening endpoint without serving yet."""
        try:
            self.server = await asyncio.start_server(
                self.handle_client,
                self.config.host,
                self.config.port,
                limit=self.config.stream_limit
            )
        except OSError as e:
            logger.log_error("bind", e)
            raise RelayStartupError(
                f"Cannot listen on {self.config.host}:{self.config.port}: {e}"
            ) from e

        addr = ', '.join(str(sock.getsockname()) for sock in self.server.sockets)
        logger.log_listening(addr)

    def _is_listening_socket(self, sock) -> bool:
        if sock is None or self.server is None:
            return False
        return sock.fileno() in {s.fileno() for s in self.server.sockets}

    async def start(self):
        """
        Start the server and serve until the listener fails or is stopped.

        asyncio only logs accept() errors and keeps retrying; they are
        caught through the loop's exception handler and end serving with
        RelayStartupError instead.
        """
        if self.server is None:
            await self.listen()

        loop = asyncio.get_running_loop()
        accept_failure = loop.create_future()
        previous_handler = loop.get_exception_handler()

        def handle_loop_exception(loop, context):
            error = context.get('exception')
            if isinstance(error, OSError) and self._is_listening_socket(context.get('socket')):
                if not accept_failure.done():
                    accept_failure.set_result(error)
            elif previous_handler is not None:
                previous_handler(loop, context)
            else:
                loop.default_exception_handler(context)

        loop.set_exception_handler(handle_loop_exception)
        serve_task = asyncio.create_task(self.server.serve_forever())
        try:
            await asyncio.wait({serve_task, accept_failure}, return_when=asyncio.FIRST_COMPLETED)
            if accept_failure.done():
                error = accept_failure.result()
                logger.log_error("accept", error)
                raise RelayStartupError(
                    f"Cannot accept on {self.config.host}:{self.config.port}: {error}"
                ) from error
            await serve_task
        finally:
            loop.set_exception_handler(previous_handler)
            self.server.close()
            serve_task.cancel()
            try:
                await serve_task
            except asyncio.CancelledError:
                pass

    async def stop(self):
        """Close the listening endpoint."""
        if self.server is not None:
            self.server.close()
            await self.server.wait_closed()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Broadcast Relay Server')
    parser.add_argument('--host', type=str, default=None,
                        help='Host to bind to (default: $RELAY_HOST or 0.0.0.0)')
    parser.add_argument('--port', type=int, default=None,
                        help='TCP port to listen on (default: $RELAY_PORT or 8888)')
    parser.add_argument('--log-level', type=str, default=None,
                        help='Log level (default: $RELAY_LOG_LEVEL or INFO)')
    return parser


def main(argv=None) -> int:
    """Run the relay until it fails or the process is terminated."""
    args = build_parser().parse_args(argv)

    try:
        config = ServerConfig.from_env()
        config = ServerConfig(
            host=args.host or config.host,
            port=config.port if args.port is None else args.port,
            log_level=args.log_level or config.log_level
        )
        logger.set_level(config.log_level)
    except ValueError as e:
        logger.log_error("configuration", e)
        return 2

    server = RelayServer(config)
    try:
        asyncio.run(server.start())
    except KeyboardInterrupt:
        logger.info("Server shutting down...")
    except RelayStartupError as e:
        logger.error(f"Server failed to start: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
