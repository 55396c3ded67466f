#!/usr/bin/env python3
"""
Client GUI - PyQt6 chat window

A single window with a read-only message area and an input field. The
input field stays disabled until the relay accepts our name, and the
window title then shows that name.
"""

import asyncio
import sys
import threading
from typing import Optional

from PyQt6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QTextEdit, QLineEdit,
    QInputDialog, QMessageBox
)
from PyQt6.QtCore import QThread, pyqtSignal

from relay_common.constants import DEFAULT_HOST, DEFAULT_PORT
from relay_client.chat.chat_client import ChatClient
from relay_client.utils.config import ClientConfig
from relay_client.utils.logger import logger


WINDOW_TITLE = "Chat Client"


class ChatWindow(QMainWindow):
    """Main application window."""

    message_sent = pyqtSignal(str)  # message text

    def __init__(self, server_host: str = DEFAULT_HOST, server_port: int = DEFAULT_PORT):
        super().__init__()
        self.server_host = server_host
        self.server_port = server_port
        self.username: Optional[str] = None
        self.network_thread: Optional['NetworkThread'] = None

        self.setup_ui()
        self.message_sent.connect(self.on_send_message)

    def setup_ui(self):
        """Setup the main window UI."""
        self.setWindowTitle(WINDOW_TITLE)
        self.resize(520, 360)

        central_widget = QWidget()
        self.setCentralWidget(central_widget)

        layout = QVBoxLayout()
        layout.setContentsMargins(5, 5, 5, 5)

        self.message_area = QTextEdit()
        self.message_area.setReadOnly(True)
        layout.addWidget(self.message_area)

        self.input_field = QLineEdit()
        self.input_field.setPlaceholderText("Type a message...")
        self.input_field.setEnabled(False)
        self.input_field.returnPressed.connect(self.send_message)
        layout.addWidget(self.input_field)

        central_widget.setLayout(layout)

    def send_message(self):
        """Send the text in the input field."""
        text = self.input_field.text()
        if text:
            self.message_sent.emit(text)
        self.input_field.clear()

    def add_line(self, line: str):
        """Append a relayed line to the message area."""
        self.message_area.append(line)
        scrollbar = self.message_area.verticalScrollBar()
        scrollbar.setValue(scrollbar.maximum())

    # ========================================================================
    # CONNECTION & NETWORKING
    # ========================================================================

    def connect_to_server(self) -> bool:
        """Ask for the server address and a name, then start the network thread."""
        host_text, ok = QInputDialog.getText(
            self, 'Welcome to Chat', 'Enter IP Address of the Server:', text=self.server_host
        )
        if not ok or not host_text.strip():
            return False
        self.server_host = host_text.strip()

        name, ok = QInputDialog.getText(self, 'Username Selection', 'Choose a username:')
        if not ok:
            return False
        self.username = name

        self.start_network(ClientConfig(self.server_host, self.server_port, self.username))
        return True

    def start_network(self, config: ClientConfig):
        """Start the network thread for the given configuration."""
        self.network_thread = NetworkThread(config)
        self.network_thread.line_received.connect(self.add_line)
        self.network_thread.name_accepted.connect(self.on_name_accepted)
        self.network_thread.connection_failed.connect(self.on_connection_failed)
        self.network_thread.disconnected.connect(self.on_disconnected)
        self.network_thread.start()

    def on_name_accepted(self, name: str):
        """Enable input once the handshake completes."""
        self.username = name
        self.input_field.setEnabled(True)
        self.input_field.setFocus()
        self.setWindowTitle(f"Chat - {name}")

    def on_send_message(self, text: str):
        if self.network_thread:
            self.network_thread.send_chat(text)

    def on_connection_failed(self, reason: str):
        QMessageBox.warning(self, "Connection error", reason)

    def on_disconnected(self):
        """Handle disconnection."""
        self.input_field.setEnabled(False)
        self.add_line("Disconnected from server")
        self.setWindowTitle(f"{WINDOW_TITLE} (Disconnected)")

    def closeEvent(self, event):
        """Close the connection before the window goes away."""
        if self.network_thread:
            self.network_thread.stop()
            self.network_thread.wait(2000)
        super().closeEvent(event)


class NetworkThread(QThread):
    """Thread running the asyncio chat client."""

    line_received = pyqtSignal(str)
    name_accepted = pyqtSignal(str)
    connection_failed = pyqtSignal(str)
    disconnected = pyqtSignal()

    def __init__(self, config: ClientConfig):
        super().__init__()
        self.config = config
        self.chat_client = ChatClient(config)
        self.chat_client.set_message_handler(self.line_received.emit)
        self.chat_client.set_accepted_handler(self.name_accepted.emit)
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.loop_ready = threading.Event()

    def run(self):
        """Run network loop."""
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)
        self.loop_ready.set()
        try:
            self.loop.run_until_complete(self._connect_and_listen())
        finally:
            self.loop.close()

    async def _connect_and_listen(self):
        if not await self.chat_client.connect():
            self.connection_failed.emit(
                f"Could not connect to {self.config.host}:{self.config.port}"
            )
            return
        try:
            await self.chat_client.listen()
        finally:
            await self.chat_client.close()
            self.disconnected.emit()

    def send_chat(self, text: str):
        """Send a chat line from the GUI thread."""
        if not self.loop_ready.wait(timeout=5.0):
            logger.warning("Event loop not ready, message not sent")
            return
        if self.loop and self.loop.is_running():
            asyncio.run_coroutine_threadsafe(self.chat_client.send_chat(text), self.loop)

    def stop(self):
        """Close the connection; listen() then returns and the thread ends."""
        if self.loop and self.loop.is_running():
            asyncio.run_coroutine_threadsafe(self.chat_client.close(), self.loop)


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

def run_gui(server_host: str = DEFAULT_HOST, server_port: int = DEFAULT_PORT,
            username: Optional[str] = None) -> int:
    """Show the window and run the Qt event loop."""
    app = QApplication.instance() or QApplication(sys.argv)

    window = ChatWindow(server_host, server_port)
    window.show()

    if username is not None:
        window.username = username
        window.start_network(ClientConfig(server_host, server_port, username))
    elif not window.connect_to_server():
        return 1

    return app.exec()
