"""
Stream Endpoints
================

Constructors for the presence service's event streams.

    Player events  - binary msgpack stream of LoginStateUpdate
    Announcements  - server-sent events carrying AnnouncementUpdate JSON

Each client gets its own HTTP client, which it owns and closes.

Example:
    from presence_stream.config import settings
    from presence_stream.api.streams import create_player_event_stream

    client = create_player_event_stream(settings)
    client.on_message.subscribe(handle_update)
    client.connect()
"""

from typing import Optional

import httpx

from presence_stream.api.http import build_http_client
from presence_stream.config import Settings
from presence_stream.models.events import AnnouncementUpdate, LoginStateUpdate
from presence_stream.ratelimit import RateLimitClock
from presence_stream.stream.client import StreamClient
from presence_stream.stream.codec import BinaryFrameCodec, TextFrameCodec


def create_player_event_stream(
    settings: Settings,
    http_client: Optional[httpx.AsyncClient] = None,
    rate_limit: Optional[RateLimitClock] = None,
) -> StreamClient[LoginStateUpdate]:
    """
    Create a client for the player login/logout stream.

    Args:
        settings: Loaded settings
        http_client: HTTP client to hand over (built from settings if None)
        rate_limit: Rate limit clock shared with one-shot requests

    Returns:
        A disconnected StreamClient
    """
    return StreamClient(
        http_client=http_client if http_client is not None else build_http_client(settings, stream=True),
        url=settings.stream.player_events_path,
        codec=BinaryFrameCodec(LoginStateUpdate),
        backoff=settings.stream.backoff_policy(),
        rate_limit=rate_limit,
    )


def create_announcement_stream(
    settings: Settings,
    http_client: Optional[httpx.AsyncClient] = None,
    rate_limit: Optional[RateLimitClock] = None,
) -> StreamClient[AnnouncementUpdate]:
    """
    Create a client for the announcement stream.

    Args:
        settings: Loaded settings
        http_client: HTTP client to hand over (built from settings if None)
        rate_limit: Rate limit clock shared with one-shot requests

    Returns:
        A disconnected StreamClient
    """
    return StreamClient(
        http_client=http_client if http_client is not None else build_http_client(settings, stream=True),
        url=settings.stream.announcements_path,
        codec=TextFrameCodec(AnnouncementUpdate),
        backoff=settings.stream.backoff_policy(),
        rate_limit=rate_limit,
    )
