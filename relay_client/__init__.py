"""
Client package for the broadcast relay.

This package contains all client-side functionality including:
- The line-protocol chat client
- Console and PyQt6 front ends
- Configuration and utilities
"""
