"""
Server logging module.

This module handles server-side logging functionality.
"""

import logging
from typing import Optional, Tuple, Union

from relay_common.constants import DEFAULT_LOG_LEVEL, LOG_FORMAT, LOG_DATE_FORMAT


class ServerLogger:
    """Server logging class."""

    def __init__(self, log_level: Union[int, str] = DEFAULT_LOG_LEVEL):
        # Set up main logger
        self.logger = logging.getLogger('broadcast_relay')
        self.logger.setLevel(log_level)

        # Remove existing handlers
        for handler in self.logger.handlers[:]:
            self.logger.removeHandler(handler)

        # Create console handler
        console_handler = logging.StreamHandler()

        # Create formatter
        formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
        console_handler.setFormatter(formatter)

        # Add handler to logger
        self.logger.addHandler(console_handler)

    def set_level(self, log_level: Union[int, str]):
        """Change the log level (accepts names like 'DEBUG')."""
        if isinstance(log_level, str):
            log_level = log_level.upper()
        self.logger.setLevel(log_level)

    def info(self, message: str):
        """Log info message."""
        self.logger.info(message)

    def error(self, message: str):
        """Log error message."""
        self.logger.error(message)

    def warning(self, message: str):
        """Log warning message."""
        self.logger.warning(message)

    def debug(self, message: str):
        """Log debug message."""
        self.logger.debug(message)

    def exception(self, message: str):
        """Log error message with the current traceback."""
        self.logger.exception(message)

    def log_listening(self, addr: str):
        """Log listener start."""
        self.info(f"Relay listening on {addr}")

    def log_connection(self, addr: Optional[Tuple], session_id: int):
        """Log client connection."""
        self.info(f"New connection from {addr}, session={session_id}")

    def log_handshake_aborted(self, session_id: int):
        """Log a session that closed before submitting a name."""
        self.info(f"Session {session_id} closed before submitting a name")

    def log_join(self, name: str, session_id: int):
        """Log a completed handshake."""
        self.info(f"'{name}' joined (session={session_id})")

    def log_chat(self, name: str, content: str):
        """Log relayed chat message."""
        self.debug(f"Chat from {name}: {content}")

    def log_departure(self, name: str, session_id: int):
        """Log an active session leaving."""
        self.info(f"'{name}' left (session={session_id})")

    def log_disconnect(self, session_id: int):
        """Log connection release."""
        self.debug(f"Connection for session={session_id} released")

    def log_delivery_failure(self, session_id: int, error: BaseException):
        """Log a failed write to a single sink during broadcast."""
        self.warning(f"Delivery to session={session_id} failed: {error!r}")

    def log_error(self, operation: str, error: BaseException):
        """Log error with operation context."""
        self.error(f"Error in {operation}: {error}")


# Global logger instance
logger = ServerLogger()
