"""
Client logging module.

This module handles client-side logging functionality.
"""

import logging
import sys

from relay_common.constants import LOG_FORMAT, LOG_DATE_FORMAT


class ClientLogger:
    """Client logging class."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger('broadcast_relay_client')
        self.logger.setLevel(log_level)

        # Remove existing handlers
        for handler in self.logger.handlers[:]:
            self.logger.removeHandler(handler)

        # Create console handler
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)

        # Create formatter
        formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
        console_handler.setFormatter(formatter)

        # Add handler to logger
        self.logger.addHandler(console_handler)

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

    def log_connection(self, host: str, port: int, success: bool):
        """Log connection attempt."""
        status = "Connected" if success else "Failed to connect"
        self.info(f"{status} to {host}:{port}")

    def log_name_submitted(self, username: str):
        """Log the name sent in answer to SUBMIT_NAME."""
        self.info(f"Submitting name '{username}'...")

    def log_name_accepted(self, username: str):
        """Log a completed handshake."""
        self.info(f"Name accepted: '{username}'")

    def log_chat_sent(self, message: str):
        """Log chat message sent."""
        self.debug(f"Chat sent: {message}")

    def show_interactive_mode_info(self):
        """Show interactive mode information."""
        self.info("Type messages to chat (Ctrl+D or Ctrl+C to exit)")

    def log_error(self, operation: str, error: Exception):
        """Log error with operation context."""
        self.error(f"Error in {operation}: {error}")


# Global logger instance
logger = ClientLogger()
