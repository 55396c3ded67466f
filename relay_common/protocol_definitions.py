"""
Protocol definitions for the broadcast relay.

The relay speaks a line-oriented text protocol: every message is one
UTF-8 line terminated by ``\\n``. This module builds the server lines,
classifies them on the client side, and handles the line codec.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from relay_common.constants import ENCODING, LINE_TERMINATOR, ProtocolMarkers


@dataclass(frozen=True)
class ChatLine:
    """A chat message on its way through the relay."""
    sender: str
    text: str

    def render(self) -> str:
        return f"{self.sender}{ProtocolMarkers.CHAT_SEPARATOR}{self.text}"


class LineKind(Enum):
    """Kinds of lines a client can receive from the relay."""
    SUBMIT_NAME = 'submit_name'
    NAME_ACCEPTED = 'name_accepted'
    MESSAGE = 'message'


# Server to client lines

def create_submit_name_line() -> str:
    """Create the handshake name request."""
    return ProtocolMarkers.SUBMIT_NAME


def create_name_accepted_line(name: str) -> str:
    """Create the handshake acceptance addressed to a new session."""
    return f"{ProtocolMarkers.NAME_ACCEPTED} {name}"


def create_join_notice(name: str) -> str:
    """Create the join notice broadcast when a session becomes active."""
    return f"{name}{ProtocolMarkers.JOINED_SUFFIX}"


def create_chat_line(name: str, content: str) -> str:
    """Create a relayed chat line."""
    return ChatLine(name, content).render()


def create_leave_notice(name: str) -> str:
    """Create the departure notice broadcast when an active session closes."""
    return f"{name}{ProtocolMarkers.LEFT_SUFFIX}"


def classify_server_line(line: str) -> Tuple[LineKind, str]:
    """
    Classify a line received from the relay.

    Returns the kind and its payload: the accepted name for
    ``NAME_ACCEPTED``, the full line for ordinary messages, and an empty
    string for ``SUBMIT_NAME``.
    """
    if line.startswith(ProtocolMarkers.SUBMIT_NAME):
        return LineKind.SUBMIT_NAME, ''
    if line.startswith(ProtocolMarkers.NAME_ACCEPTED):
        return LineKind.NAME_ACCEPTED, line[len(ProtocolMarkers.NAME_ACCEPTED) + 1:]
    return LineKind.MESSAGE, line


# Line codec

def encode_line(line: str) -> bytes:
    """Encode a single protocol line for the wire."""
    return line.encode(ENCODING) + LINE_TERMINATOR


def decode_line(data: bytes) -> str:
    """Decode raw line bytes, dropping one terminator (``\\n`` or ``\\r\\n``)."""
    text = data.decode(ENCODING, errors='replace')
    if text.endswith('\n'):
        text = text[:-1]
        if text.endswith('\r'):
            text = text[:-1]
    return text


async def read_line(reader: asyncio.StreamReader) -> Optional[str]:
    """
    Read one line from the stream.

    Returns None at end-of-stream. A trailing line without a terminator
    is still returned before the end-of-stream. Lines longer than the
    reader's buffer limit are assembled piecewise, so there is no
    message-size limit.
    """
    chunks = []
    while True:
        try:
            chunks.append(await reader.readuntil(LINE_TERMINATOR))
            break
        except asyncio.LimitOverrunError as e:
            chunks.append(await reader.readexactly(e.consumed))
        except asyncio.IncompleteReadError as e:
            chunks.append(e.partial)
            if not any(chunks):
                return None
            break
    return decode_line(b''.join(chunks))
