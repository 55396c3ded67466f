"""
Server configuration module.

This module handles server-side configuration settings.
"""

import os
from typing import Mapping, Optional

from relay_common.constants import (
    DEFAULT_SERVER_HOST, DEFAULT_PORT, DEFAULT_LOG_LEVEL, STREAM_LIMIT,
    ENV_HOST, ENV_PORT, ENV_LOG_LEVEL
)


class ServerConfig:
    """Server configuration class."""

    def __init__(self, host: str = DEFAULT_SERVER_HOST, port: int = DEFAULT_PORT,
                 log_level: str = DEFAULT_LOG_LEVEL):
        if not 0 <= port <= 65535:
            raise ValueError(f"Port out of range: {port}")
        self.host = host
        self.port = port
        self.log_level = log_level

        # Stream settings
        self.stream_limit = STREAM_LIMIT

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'ServerConfig':
        """Build a configuration from RELAY_* environment variables."""
        environ = os.environ if environ is None else environ
        port_text = environ.get(ENV_PORT)
        try:
            port = int(port_text) if port_text else DEFAULT_PORT
        except ValueError:
            raise ValueError(f"{ENV_PORT} must be an integer, got {port_text!r}") from None
        return cls(
            host=environ.get(ENV_HOST) or DEFAULT_SERVER_HOST,
            port=port,
            log_level=environ.get(ENV_LOG_LEVEL) or DEFAULT_LOG_LEVEL,
        )
