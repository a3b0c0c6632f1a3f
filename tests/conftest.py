"""
Test Configuration
==================

Pytest fixtures and test configuration for presence-stream.

Streams are simulated with httpx.MockTransport: a ScriptedServer hands out
one scripted reply per request, so a test can describe a whole sequence
of connection attempts (refused, empty body, frames then hold open).
"""

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional, Union

import httpx
import pytest

from presence_stream.config import Settings
from presence_stream.identity import IdentityHasher
from presence_stream.models.events import AnnouncementKind, AnnouncementUpdate, LoginStateUpdate
from presence_stream.stream.backoff import BackoffPolicy
from presence_stream.stream.client import StreamClient


BASE_URL = "http://presence.test/"


# =============================================================================
# Scripted stream server
# =============================================================================

@dataclass
class Reply:
    """One scripted response."""

    status: int = 200
    chunks: List[bytes] = field(default_factory=list)
    hold: bool = False
    headers: Optional[dict] = None


class ScriptedServer:
    """
    MockTransport handler replaying scripted replies.

    Each request consumes the next reply. Once the script runs out the
    last reply is repeated. An exception in the script is raised from
    the transport instead of answering.
    """

    def __init__(self) -> None:
        self.replies: List[Union[Reply, Exception]] = []
        self.requests: List[httpx.Request] = []
        self.release = asyncio.Event()

    def script(self, *replies: Union[Reply, Exception]) -> None:
        self.replies.extend(replies)

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self.replies)) - 1
        reply = self.replies[index] if self.replies else Reply(hold=True)

        if isinstance(reply, Exception):
            raise reply

        return httpx.Response(
            reply.status,
            headers=reply.headers,
            content=self._body(reply),
        )

    async def _body(self, reply: Reply):
        for chunk in reply.chunks:
            yield chunk
            await asyncio.sleep(0)
        if reply.hold:
            await self.release.wait()

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handle), base_url=BASE_URL)


class EventLog:
    """Records every notification a StreamClient publishes, in order."""

    def __init__(self, client: StreamClient) -> None:
        self.events: list = []
        self.transitions: list = []
        self.errors: list = []
        self.delays_on_error: list = []

        client.on_connected.subscribe(lambda c: self.events.append("connected"))
        client.on_disconnected.subscribe(lambda c: self.events.append("disconnected"))
        client.on_heartbeat.subscribe(lambda c: self.events.append("heartbeat"))
        client.on_message.subscribe(lambda c, record: self.events.append(("message", record)))
        client.on_error.subscribe(self._on_error)
        client.on_state_changed.subscribe(
            lambda c, old, new: self.transitions.append((old, new))
        )

    def _on_error(self, client: StreamClient, error: BaseException) -> None:
        self.events.append("error")
        self.errors.append(error)
        self.delays_on_error.append(client.current_reconnect_delay)

    @property
    def messages(self) -> list:
        return [event[1] for event in self.events if isinstance(event, tuple)]


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def server():
    """Provide a scripted stream server."""
    return ScriptedServer()


@pytest.fixture
async def make_client(server):
    """
    Provide a StreamClient factory bound to the scripted server.

    Every client created is disposed at teardown.
    """
    clients = []

    def factory(codec, backoff=None, rate_limit=None, url="api/stream"):
        client = StreamClient(
            http_client=server.http_client(),
            url=url,
            codec=codec,
            backoff=backoff or BackoffPolicy(minimum=10.0, maximum=60.0, increment=5.0),
            rate_limit=rate_limit,
        )
        clients.append(client)
        return client

    yield factory

    server.release.set()
    for client in clients:
        await client.aclose()


@pytest.fixture
def event_log():
    """Provide a factory attaching an EventLog to a client."""
    return EventLog


@pytest.fixture
def wait_until():
    """Provide an async helper polling a predicate until it holds."""

    async def _wait_until(predicate, timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("Condition not met before timeout")
            await asyncio.sleep(0.005)

    return _wait_until


@pytest.fixture
def settings():
    """Provide default settings with test credentials."""
    return Settings.model_validate({
        "api": {"url": BASE_URL, "authentication": "Bearer secret-token", "client_key": "key-123"},
        "identity": {"group_key": "test-group", "build_id": "test-build"},
    })


@pytest.fixture
def hasher():
    """Provide an identity hasher with a fixed key and build."""
    return IdentityHasher(group_key="test-group", build_id="test-build")


@pytest.fixture
def make_update():
    """Provide a LoginStateUpdate factory with distinguishable digests."""

    def factory(n: int = 1, logged_in: bool = True, territory_id: int = 132, world_id: int = 73):
        return LoginStateUpdate(
            identifier_hash=bytes([n]) * 32,
            identifier_salt=bytes([n + 100]) * 16,
            logged_in=logged_in,
            territory_id=territory_id,
            world_id=world_id,
        )

    return factory


@pytest.fixture
def sample_announcement():
    """Provide a sample AnnouncementUpdate."""
    return AnnouncementUpdate(
        message="Servers restart at 10:00 UTC",
        kind=AnnouncementKind.MAINTENANCE,
        channel=None,
    )
