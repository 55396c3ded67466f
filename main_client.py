#!/usr/bin/env python3
"""
Broadcast Relay Client - Main Entry Point

Usage:
    python main_client.py [--server-ip HOST] [--port PORT] [--username NAME] [--cli]

Modes:
    (default)    Launch with PyQt6 GUI
    --cli        Launch with command-line interface
"""

import argparse
import sys

from relay_common.constants import DEFAULT_HOST, DEFAULT_PORT


def run_gui_client(username: str = None, server_host: str = DEFAULT_HOST, server_port: int = DEFAULT_PORT) -> int:
    """Run the GUI client."""
    try:
        from relay_client.ui.client_gui import run_gui
    except ImportError:
        print("[ERROR] PyQt6 not installed. Install with: pip install PyQt6")
        return 1

    return run_gui(server_host, server_port, username)


def run_cli_client(username: str = None, server_host: str = DEFAULT_HOST, server_port: int = DEFAULT_PORT) -> int:
    """Run the CLI client."""
    import asyncio
    from relay_client.main_client import RelayClient

    if username is None:
        username = input("Choose a username: ").strip()

    client = RelayClient(server_host, server_port, username)

    try:
        asyncio.run(client.interactive_mode())
    except KeyboardInterrupt:
        print("\n[INFO] Interrupted by user")
    return 0


def main(argv=None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description='Broadcast Relay Client')
    parser.add_argument('--username', type=str, default=None,
                        help='Name to register with (default: asked interactively)')
    parser.add_argument('--server-ip', type=str, default=DEFAULT_HOST,
                        help=f'Server IP address (default: {DEFAULT_HOST})')
    parser.add_argument('--port', type=int, default=DEFAULT_PORT,
                        help=f'Server port (default: {DEFAULT_PORT})')
    parser.add_argument('--cli', action='store_true',
                        help='Run in command-line mode (GUI is default)')

    args = parser.parse_args(argv)

    if args.cli:
        return run_cli_client(args.username, args.server_ip, args.port)
    return run_gui_client(args.username, args.server_ip, args.port)


if __name__ == "__main__":
    sys.exit(main())
