"""
Server package for the broadcast relay.

This package contains all server-side functionality including:
- Connection listening and per-connection sessions
- The shared registry of active sinks
- Join, chat and leave fan-out
- Configuration and utilities
"""
