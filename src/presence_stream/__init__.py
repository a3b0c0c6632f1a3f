"""
Presence Stream
===============

Resilient client for a presence service's live event streams.

Callers subscribe to login/logout and announcement streams over HTTP. The
client decodes each frame, publishes it to subscribers, and reconnects on
its own when the connection drops. User identifiers are never sent raw:
requests carry a keyed, salted, hour-windowed digest instead.

Components:
    - stream: StreamClient state machine, framing codecs, backoff
    - identity: IdentityHasher and hash-to-record lookup
    - api: HTTP client construction, one-shot requests, stream constructors
    - models: Records and connection state
    - config: YAML / environment settings and logging setup

Example:
    from presence_stream.config import settings
    from presence_stream.api import create_player_event_stream

    client = create_player_event_stream(settings)
    client.on_message.subscribe(lambda c, update: print(update))
    client.connect()
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
