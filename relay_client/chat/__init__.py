"""
Chat module for client-side messaging functionality.

Handles:
- Answering the name handshake
- Sending chat lines
- Dispatching relayed lines to a handler
"""
