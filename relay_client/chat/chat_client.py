"""
Chat client module.

This module speaks the relay's line protocol from the client side.
"""

import asyncio
from typing import Callable, Optional

from relay_common.protocol_definitions import (
    LineKind, classify_server_line, encode_line, read_line
)
from relay_client.utils.config import ClientConfig
from relay_client.utils.logger import logger


class ChatClient:
    """Client-side chat functionality."""

    def __init__(self, config: ClientConfig):
        self.config = config
        self.reader: Optional[asyncio.StreamReader] = None
        self.writer: Optional[asyncio.StreamWriter] = None
        self.accepted_name: Optional[str] = None
        self.message_handler: Optional[Callable[[str], None]] = None
        self.accepted_handler: Optional[Callable[[str], None]] = None

    def set_message_handler(self, handler: Callable[[str], None]):
        """Set the handler for relayed lines (join, chat and leave notices)."""
        self.message_handler = handler

    def set_accepted_handler(self, handler: Callable[[str], None]):
        """Set the handler called once the relay accepts our name."""
        self.accepted_handler = handler

    @property
    def connected(self) -> bool:
        return self.writer is not None and not self.writer.is_closing()

    async def connect(self, retry_count: Optional[int] = None, base_delay: Optional[float] = None) -> bool:
        """Establish connection to the relay with retry logic and exponential backoff."""
        retry_count = self.config.retry_attempts if retry_count is None else retry_count
        base_delay = self.config.retry_delay_base if base_delay is None else base_delay

        for attempt in range(1, retry_count + 1):
            try:
                self.reader, self.writer = await asyncio.wait_for(
                    asyncio.open_connection(self.config.host, self.config.port,
                                            limit=self.config.stream_limit),
                    timeout=self.config.connect_timeout
                )
                logger.log_connection(self.config.host, self.config.port, True)
                return True
            except (OSError, asyncio.TimeoutError) as e:
                logger.log_connection(self.config.host, self.config.port, False)
                logger.log_error("connection", e)

                if attempt < retry_count:
                    delay = base_delay * (2 ** (attempt - 1))
                    logger.info(f"Retrying connection in {delay}s (attempt {attempt}/{retry_count})...")
                    await asyncio.sleep(delay)

        logger.error(f"Failed to connect after {retry_count} attempts")
        return False

    async def send_line(self, line: str) -> bool:
        """Send a raw protocol line."""
        if not self.connected:
            logger.error("Not connected to relay")
            return False

        try:
            self.writer.write(encode_line(line))
            await self.writer.drain()
            return True
        except (ConnectionError, OSError) as e:
            logger.log_error("send", e)
            return False

    async def send_chat(self, message: str) -> bool:
        """Send a chat message; empty messages are not sent."""
        if not message:
            return False
        if await self.send_line(message):
            logger.log_chat_sent(message)
            return True
        return False

    async def handle_line(self, line: str):
        """Handle one line received from the relay."""
        kind, payload = classify_server_line(line)

        if kind is LineKind.SUBMIT_NAME:
            # An empty answer makes the relay drop the connection
            username = self.config.username or ''
            logger.log_name_submitted(username)
            await self.send_line(username)
        elif kind is LineKind.NAME_ACCEPTED:
            self.accepted_name = payload
            logger.log_name_accepted(payload)
            if self.accepted_handler:
                self.accepted_handler(payload)
        elif self.message_handler:
            self.message_handler(payload)

    async def listen(self):
        """Read lines until the relay closes the connection."""
        try:
            while True:
                line = await read_line(self.reader)
                if line is None:
                    logger.info("Relay closed the connection")
                    break
                await self.handle_line(line)
        except (ConnectionError, OSError, asyncio.IncompleteReadError) as e:
            logger.log_error("receive", e)

    async def close(self):
        """Close the connection."""
        if self.writer is None:
            return
        writer, self.writer = self.writer, None
        try:
            writer.close()
            await writer.wait_closed()
        except (ConnectionError, OSError) as e:
            logger.debug(f"Error while closing connection: {e!r}")
