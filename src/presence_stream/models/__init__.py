"""
Data Models
===========

Models shared by the stream client and the request helpers.

Models:
    State:
        - ConnectionState: Lifecycle of a stream client

    Events:
        - LoginStateUpdate: Player login/logout record
        - AnnouncementUpdate: Operator announcement
        - AnnouncementKind: Announcement category

    Identity:
        - HashedIdentifier: Digest + salt pair sent instead of a raw identifier
"""

from presence_stream.models.state import ConnectionState
from presence_stream.models.events import (
    AnnouncementKind,
    AnnouncementUpdate,
    LoginStateUpdate,
    StreamRecord,
)
from presence_stream.models.identity import DIGEST_LENGTH, SALT_LENGTH, HashedIdentifier

__all__ = [
    # State
    "ConnectionState",
    # Events
    "StreamRecord",
    "LoginStateUpdate",
    "AnnouncementKind",
    "AnnouncementUpdate",
    # Identity
    "HashedIdentifier",
    "DIGEST_LENGTH",
    "SALT_LENGTH",
]
