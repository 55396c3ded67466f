#!/usr/bin/env python3
"""
Broadcast Relay Client - console mode

Connects to the relay, answers the name handshake and prints every
relayed line while forwarding stdin lines as chat messages.
"""

import asyncio
import sys
from typing import Callable, Optional

from relay_client.chat.chat_client import ChatClient
from relay_client.utils.config import ClientConfig
from relay_client.utils.logger import logger


class RelayClient:
    """Console client that ties stdin and stdout to a ChatClient."""

    def __init__(self, host: str, port: int, username: str,
                 output: Callable[[str], None] = print):
        self.config = ClientConfig(host, port, username)
        self.chat_client = ChatClient(self.config)
        self.output = output
        self.accepted: Optional[asyncio.Event] = None

        self.chat_client.set_message_handler(self.output)
        self.chat_client.set_accepted_handler(self._on_accepted)

    def _on_accepted(self, name: str):
        self.output(f"Chat - {name}")
        self.accepted.set()

    async def interactive_mode(self, input_source: Optional[Callable[[], str]] = None):
        """Run client with interactive chat input until stdin or the relay closes."""
        if not await self.chat_client.connect():
            return

        read_input = input_source or sys.stdin.readline
        loop = asyncio.get_running_loop()
        self.accepted = asyncio.Event()
        listener_task = asyncio.create_task(self.chat_client.listen())
        accepted_task = asyncio.create_task(self.accepted.wait())

        try:
            # Input before NAME_ACCEPTED would be taken as the name
            await asyncio.wait({listener_task, accepted_task}, return_when=asyncio.FIRST_COMPLETED)
            if self.accepted.is_set():
                logger.show_interactive_mode_info()

            while self.accepted.is_set() and not listener_task.done():
                input_task = loop.run_in_executor(None, read_input)
                done, _ = await asyncio.wait(
                    {listener_task, input_task}, return_when=asyncio.FIRST_COMPLETED
                )
                if input_task not in done:
                    break
                user_input = input_task.result()
                if not user_input:
                    break  # EOF
                await self.chat_client.send_chat(user_input.rstrip('\r\n'))
        finally:
            accepted_task.cancel()
            await self.chat_client.close()
            if not listener_task.done():
                listener_task.cancel()
            try:
                await listener_task
            except asyncio.CancelledError:
                pass

            logger.info("Disconnected from relay")
