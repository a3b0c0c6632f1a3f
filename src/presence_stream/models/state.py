"""
Connection State
================

Lifecycle states of a stream client.

Transitions:
    DISCONNECTED → CONNECTING → CONNECTED
    CONNECTING | CONNECTED → FAULTED (read loop ended abnormally)
    FAULTED → CONNECTING (scheduled retry)
    CONNECTING | CONNECTED | FAULTED → DISCONNECTING → DISCONNECTED (explicit stop)

FAULTED is kept separate from DISCONNECTED so the reconnect timer can tell
"the caller asked us to stop" apart from "the network failed".
"""

from enum import Enum


class ConnectionState(str, Enum):
    """
    Connection state of a StreamClient.

    Attributes:
        DISCONNECTED: Initial and terminal state, no resources held
        CONNECTING: Transport is being opened
        CONNECTED: First bytes received, read loop active
        DISCONNECTING: Transitional, no I/O
        FAULTED: Read loop ended abnormally, eligible for auto-retry
    """

    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    DISCONNECTING = "DISCONNECTING"
    FAULTED = "FAULTED"

    @property
    def is_active(self) -> bool:
        """Whether a read loop is starting or running."""
        return self in (ConnectionState.CONNECTING, ConnectionState.CONNECTED)
