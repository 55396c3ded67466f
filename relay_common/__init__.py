"""
Shared package for the broadcast relay.

Contains the constants and wire-protocol helpers used by both the
relay server and the relay client.
"""
