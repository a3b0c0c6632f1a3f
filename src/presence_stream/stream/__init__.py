"""
Stream Module
=============

Event stream consumption with automatic reconnection.

This module provides the core of the presence client:
    - StreamClient: Connection state machine and read loop
    - TextFrameCodec / BinaryFrameCodec: Pluggable wire formats
    - BackoffPolicy: Reconnect delay calculation
    - Notification: Ordered observer list for client events

Example:
    from presence_stream.stream import BinaryFrameCodec, StreamClient
    from presence_stream.models import LoginStateUpdate

    client = StreamClient(http_client, "api/stream", BinaryFrameCodec(LoginStateUpdate))
    client.on_message.subscribe(lambda c, update: print(update))
    client.connect()
"""

from presence_stream.stream.backoff import BackoffPolicy
from presence_stream.stream.codec import (
    BinaryFrameCodec,
    FrameCodec,
    FrameResult,
    Heartbeat,
    Malformed,
    Message,
    TextFrameCodec,
)
from presence_stream.stream.notifications import Notification
from presence_stream.stream.client import StreamClient, StreamClientMetrics


__all__ = [
    "BackoffPolicy",
    "FrameCodec",
    "FrameResult",
    "Heartbeat",
    "Message",
    "Malformed",
    "TextFrameCodec",
    "BinaryFrameCodec",
    "Notification",
    "StreamClient",
    "StreamClientMetrics",
]
