"""
Presence Service API
====================

HTTP-facing helpers for the presence service.

Components:
    - build_http_client: Configured httpx.AsyncClient (headers, timeouts)
    - post_login_state / send_login_state / get_metadata: One-shot requests
    - create_player_event_stream / create_announcement_stream: Stream clients
"""

from presence_stream.api.http import SESSION_IDENTIFIER, build_http_client
from presence_stream.api.calls import get_metadata, post_login_state, send_login_state
from presence_stream.api.streams import create_announcement_stream, create_player_event_stream


__all__ = [
    "SESSION_IDENTIFIER",
    "build_http_client",
    "post_login_state",
    "send_login_state",
    "get_metadata",
    "create_player_event_stream",
    "create_announcement_stream",
]
