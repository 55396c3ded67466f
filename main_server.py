#!/usr/bin/env python3
"""
Broadcast Relay Server - Main Entry Point

Usage:
    python main_server.py

Optional arguments:
    --host HOST           Bind address (default: $RELAY_HOST or 0.0.0.0)
    --port PORT           TCP port (default: $RELAY_PORT or 8888)
    --log-level LEVEL     Log level (default: $RELAY_LOG_LEVEL or INFO)
"""

import sys

from relay_server.main_server import main


if __name__ == "__main__":
    sys.exit(main())
