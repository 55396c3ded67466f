"""
Relay loop.

Turns session events into registry broadcasts.
"""

from typing import List

from relay_common.protocol_definitions import (
    create_join_notice, create_chat_line, create_leave_notice
)
from relay_server.registry import Registry
from relay_server.utils.logger import logger


class RelayLoop:
    """Builds join, chat and leave payloads and fans them out."""

    def __init__(self, registry: Registry):
        self.registry = registry

    async def announce_join(self, name: str) -> List[int]:
        return await self.registry.broadcast(create_join_notice(name))

    async def relay_chat(self, name: str, content: str) -> List[int]:
        logger.log_chat(name, content)
        return await self.registry.broadcast(create_chat_line(name, content))

    async def announce_leave(self, name: str) -> List[int]:
        return await self.registry.broadcast(create_leave_notice(name))
