"""
Shared constants for the broadcast relay.

This module contains all constants used across client and server components.
"""

# Network Configuration
DEFAULT_HOST = 'localhost'
DEFAULT_SERVER_HOST = '0.0.0.0'
DEFAULT_PORT = 8888

# Wire encoding
ENCODING = 'utf-8'
LINE_TERMINATOR = b'\n'

# asyncio.StreamReader buffer limit; lines longer than this are still
# accepted, the reader just grows its buffer (no message-size limit)
STREAM_LIMIT = 2 ** 16

# Client connection retries
CONNECT_TIMEOUT = 10.0  # seconds
MAX_RETRY_ATTEMPTS = 3
RECONNECT_DELAY_BASE = 1.0  # seconds

# Logging
DEFAULT_LOG_LEVEL = 'INFO'
LOG_FORMAT = '%(asctime)s [%(levelname)s] %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Environment overrides for the server
ENV_HOST = 'RELAY_HOST'
ENV_PORT = 'RELAY_PORT'
ENV_LOG_LEVEL = 'RELAY_LOG_LEVEL'


# Protocol markers
class ProtocolMarkers:
    # Server to Client
    SUBMIT_NAME = 'SUBMIT_NAME'
    NAME_ACCEPTED = 'NAME_ACCEPTED'

    # Notice suffixes
    JOINED_SUFFIX = ' has joined the chat.'
    LEFT_SUFFIX = ' has left the chat.'
    CHAT_SEPARATOR = ': '
