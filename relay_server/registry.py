"""
Registry of active sessions.

Holds the output sink of every session that completed the handshake and
fans lines out to them.
"""

import asyncio
from typing import Dict, List

from relay_common.protocol_definitions import encode_line
from relay_server.utils.logger import logger


class Registry:
    """Concurrency-safe mapping of session id to writable sink."""

    def __init__(self):
        self._sinks: Dict[int, asyncio.StreamWriter] = {}
        self._lock = asyncio.Lock()  # Protect shared state

    def __len__(self) -> int:
        return len(self._sinks)

    def __contains__(self, session_id: int) -> bool:
        return session_id in self._sinks

    async def register(self, session_id: int, sink: asyncio.StreamWriter):
        """Add a sink; a second registration of the same session is ignored."""
        async with self._lock:
            self._sinks.setdefault(session_id, sink)

    async def deregister(self, session_id: int):
        """Remove a sink if present."""
        async with self._lock:
            self._sinks.pop(session_id, None)

    async def broadcast(self, line: str) -> List[int]:
        """
        Send a line to every registered sink, sender included.

        The sink list is snapshotted under the lock and the lock is released
        before any I/O. All writes are buffered before the first await, so
        every recipient sees concurrent broadcasts in the same order.
        A failing sink is logged and skipped.

        Returns the ids of sessions whose delivery failed.
        """
        async with self._lock:
            snapshot = list(self._sinks.items())

        data = encode_line(line)
        pending = []
        failed = []

        for session_id, sink in snapshot:
            try:
                sink.write(data)
                pending.append((session_id, sink))
            except Exception as e:
                logger.log_delivery_failure(session_id, e)
                failed.append(session_id)

        for session_id, sink in pending:
            try:
                await sink.drain()
            except Exception as e:
                logger.log_delivery_failure(session_id, e)
                failed.append(session_id)

        return failed
