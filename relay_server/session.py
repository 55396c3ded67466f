"""
Per-connection session.

A session owns one client connection from accept to close. It runs the
name handshake, relays every non-empty line while active, and always
releases the connection on the way out.
"""

import asyncio
import itertools
from enum import Enum
from typing import Optional

from relay_common.protocol_definitions import (
    create_submit_name_line, create_name_accepted_line, encode_line, read_line
)
from relay_server.registry import Registry
from relay_server.relay import RelayLoop
from relay_server.utils.logger import logger


class SessionState(Enum):
    AWAITING_NAME = 'awaiting_name'
    ACTIVE = 'active'
    CLOSED = 'closed'


# Errors that end a single connection without affecting the others
CONNECTION_ERRORS = (
    ConnectionError,
    OSError,
    asyncio.IncompleteReadError,
    asyncio.LimitOverrunError,
)


class Session:
    """Server-side state and handler for one client connection."""

    _ids = itertools.count(1)

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
                 registry: Registry, relay: RelayLoop):
        self.session_id = next(Session._ids)
        self.reader = reader
        self.writer = writer
        self.registry = registry
        self.relay = relay
        self.peer = writer.get_extra_info('peername')
        self.display_name: Optional[str] = None
        self.state = SessionState.AWAITING_NAME

    async def send(self, line: str):
        """Send a line to this session only."""
        self.writer.write(encode_line(line))
        await self.writer.drain()

    async def run(self):
        """Drive the session through AWAITING_NAME, ACTIVE and CLOSED."""
        logger.log_connection(self.peer, self.session_id)
        try:
            name = await self._handshake()
            if name is None:
                logger.log_handshake_aborted(self.session_id)
                return
            await self._activate(name)
            await self._relay_lines()
        except CONNECTION_ERRORS as e:
            logger.warning(f"Connection error for session={self.session_id}: {e!r}")
        except Exception:
            logger.exception(f"Unexpected error in session={self.session_id}")
        finally:
            await self._close()

    async def _handshake(self) -> Optional[str]:
        await self.send(create_submit_name_line())
        name = await read_line(self.reader)
        if not name:
            return None
        return name

    async def _activate(self, name: str):
        # Duplicate or marker-like names are accepted as-is
        await self.registry.register(self.session_id, self.writer)
        self.display_name = name
        self.state = SessionState.ACTIVE
        logger.log_join(name, self.session_id)
        await self.send(create_name_accepted_line(name))
        await self.relay.announce_join(name)

    async def _relay_lines(self):
        while True:
            line = await read_line(self.reader)
            if line is None:
                break
            if not line:
                continue
            await self.relay.relay_chat(self.display_name, line)

    async def _close(self):
        self.state = SessionState.CLOSED
        await self.registry.deregister(self.session_id)
        if self.display_name is not None:
            logger.log_departure(self.display_name, self.session_id)
            await self.relay.announce_leave(self.display_name)
        try:
            self.writer.close()
            await self.writer.wait_closed()
        except CONNECTION_ERRORS as e:
            logger.debug(f"Error closing session={self.session_id}: {e!r}")
        logger.log_disconnect(self.session_id)
