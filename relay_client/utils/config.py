"""
Client configuration module.

This module handles client-side configuration settings.
"""

from typing import Optional

from relay_common.constants import (
    DEFAULT_HOST, DEFAULT_PORT, STREAM_LIMIT, CONNECT_TIMEOUT,
    MAX_RETRY_ATTEMPTS, RECONNECT_DELAY_BASE
)


class ClientConfig:
    """Client configuration class."""

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT, username: Optional[str] = None):
        self.host = host
        self.port = port
        self.username = username

        # Connection settings
        self.stream_limit = STREAM_LIMIT
        self.connect_timeout = CONNECT_TIMEOUT
        self.retry_attempts = MAX_RETRY_ATTEMPTS
        self.retry_delay_base = RECONNECT_DELAY_BASE
