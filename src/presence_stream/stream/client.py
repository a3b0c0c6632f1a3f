"""
Stream Client
=============

Long-lived HTTP stream subscriber with automatic reconnection.

This client:
    - Opens an HTTP GET to a fixed stream endpoint
    - Decodes each frame with a pluggable FrameCodec
    - Publishes connected / heartbeat / message / error / disconnected
      notifications, in the order they happen on the read loop
    - Reconnects after a failure, waiting longer after each failed attempt

Example:
    client = StreamClient(
        http_client=httpx.AsyncClient(base_url="https://presence.example/"),
        url="api/stream",
        codec=BinaryFrameCodec(LoginStateUpdate),
        backoff=BackoffPolicy(minimum=5, maximum=60, increment=5),
    )
    client.on_message.subscribe(lambda c, update: print(update))

    async with client:
        await asyncio.sleep(3600)

Design Rules:
    - connect() and disconnect() never block and never raise I/O errors
    - At most one read loop per client
    - A malformed frame is skipped, it never ends the stream
    - Only disconnect() stops reconnection; failures always retry
    - The client owns its httpx.AsyncClient and closes it in aclose()
    - Must be driven from a running asyncio event loop
"""

import asyncio
import logging
from contextlib import aclosing
from typing import AsyncIterator, Generic, Optional, Set, TypeVar

import httpx

from presence_stream.errors import ClientDisposedError, TransportError, UnexpectedEndOfStream
from presence_stream.models.events import StreamRecord
from presence_stream.models.state import ConnectionState
from presence_stream.ratelimit import RateLimitClock
from presence_stream.stream.backoff import BackoffPolicy
from presence_stream.stream.codec import FrameCodec, FrameResult, Heartbeat, Message
from presence_stream.stream.notifications import Notification


logger = logging.getLogger(__name__)

T = TypeVar("T", bound=StreamRecord)


class StreamClientMetrics:
    """Counters for StreamClient observability."""

    __slots__ = (
        "connection_attempts",
        "connections",
        "reconnect_count",
        "frames_received",
        "messages_received",
        "heartbeats_received",
        "malformed_frames",
        "faults",
    )

    def __init__(self) -> None:
        self.connection_attempts: int = 0
        self.connections: int = 0
        self.reconnect_count: int = 0
        self.frames_received: int = 0
        self.messages_received: int = 0
        self.heartbeats_received: int = 0
        self.malformed_frames: int = 0
        self.faults: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {name: getattr(self, name) for name in self.__slots__}


class StreamClient(Generic[T]):
    """
    Resilient client for one event stream.

    Attributes:
        http_client: HTTP client used for the stream request (owned)
        url: Stream endpoint, absolute or relative to the client's base URL
        codec: Framing codec for the stream's wire format
        backoff: Reconnect delay policy
        rate_limit: Optional clock shared with one-shot requests
        metrics: Operational counters

    Notifications:
        on_connected(client)
        on_disconnected(client)
        on_heartbeat(client)
        on_message(client, record)
        on_error(client, exception)
        on_state_changed(client, old_state, new_state)
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        url: str,
        codec: FrameCodec[T],
        backoff: Optional[BackoffPolicy] = None,
        rate_limit: Optional[RateLimitClock] = None,
    ) -> None:
        """
        Initialize stream client.

        Args:
            http_client: HTTP client to use. It must not be shared, the
                stream client closes it on disposal.
            url: Stream endpoint
            codec: Framing codec (TextFrameCodec or BinaryFrameCodec)
            backoff: Reconnect delay policy (defaults to BackoffPolicy())
            rate_limit: Rate limit clock consulted before each attempt
        """
        self.http_client = http_client
        self.url = url
        self.codec = codec
        self.backoff = backoff or BackoffPolicy()
        self.rate_limit = rate_limit
        self.metrics = StreamClientMetrics()

        self.on_connected = Notification("connected")
        self.on_disconnected = Notification("disconnected")
        self.on_heartbeat = Notification("heartbeat")
        self.on_message = Notification("message")
        self.on_error = Notification("error")
        self.on_state_changed = Notification("state_changed")

        # State
        self._state: ConnectionState = ConnectionState.DISCONNECTED
        self._read_task: Optional[asyncio.Task] = None
        self._stopping_tasks: Set[asyncio.Task] = set()
        self._reconnect_task: Optional[asyncio.Task] = None
        self._reconnect_delay: float = self.backoff.reset()
        self._disposed: bool = False

        # Backoff coordination, unsubscribed again in aclose()
        self.on_connected.subscribe(self._handle_connected)
        self.on_disconnected.subscribe(self._handle_disconnected)
        self.on_error.subscribe(self._handle_error)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def current_reconnect_delay(self) -> float:
        """Delay (seconds) the next scheduled reconnect will wait."""
        return self._reconnect_delay

    @property
    def reconnect_pending(self) -> bool:
        """Whether a reconnect attempt is scheduled."""
        return self._reconnect_task is not None and not self._reconnect_task.done()

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    # =========================================================================
    # Public operations
    # =========================================================================

    def connect(self) -> None:
        """
        Start streaming in the background.

        No-op while already connecting or connected. Connection failures
        are reported through on_error, never raised.

        Raises:
            ClientDisposedError: The client has been disposed
        """
        self._ensure_not_disposed()
        if self._state.is_active:
            logger.debug(f"connect() ignored, stream {self.url} is {self._state.value}")
            return

        self._cancel_reconnect()
        self._set_state(ConnectionState.CONNECTING)
        self.metrics.connection_attempts += 1
        self._read_task = asyncio.get_running_loop().create_task(
            self._read_loop(),
            name=f"stream-read:{self.url}",
        )

    def disconnect(self) -> None:
        """
        Stop streaming and cancel any pending reconnect.

        No-op while already disconnecting or disconnected. Legal while
        FAULTED, in which case the scheduled retry is dropped.

        Raises:
            ClientDisposedError: The client has been disposed
        """
        self._ensure_not_disposed()
        if self._state in (ConnectionState.DISCONNECTING, ConnectionState.DISCONNECTED):
            logger.debug(f"disconnect() ignored, stream {self.url} is {self._state.value}")
            return

        self._set_state(ConnectionState.DISCONNECTING)
        self._cancel_reconnect()

        # Cancelling the task closes the response, which unblocks any read
        task, self._read_task = self._read_task, None
        if task is not None and not task.done():
            self._stopping_tasks.add(task)
            task.add_done_callback(self._stopping_tasks.discard)
            task.cancel()

        self._set_state(ConnectionState.DISCONNECTED)
        self.on_disconnected.emit(self)

    async def wait_closed(self) -> None:
        """Wait until the current read loop (if any) has exited."""
        tasks = [t for t in (self._read_task, *self._stopping_tasks) if t is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def aclose(self) -> None:
        """
        Dispose of the client.

        Idempotent. Disconnects if needed, drops internal handlers, waits
        for the read loop to exit and closes the owned HTTP client.
        """
        if self._disposed:
            return

        self.disconnect()
        self._disposed = True

        self.on_connected.unsubscribe(self._handle_connected)
        self.on_disconnected.unsubscribe(self._handle_disconnected)
        self.on_error.unsubscribe(self._handle_error)
        self._cancel_reconnect()

        try:
            await self.wait_closed()
        finally:
            await self.http_client.aclose()

        logger.info(f"Stream client for {self.url} disposed")

    async def __aenter__(self) -> "StreamClient[T]":
        """Async context manager entry."""
        self.connect()
        return self

    async def __aexit__(self, *args) -> None:
        """Async context manager exit."""
        await self.aclose()

    # =========================================================================
    # Read loop
    # =========================================================================

    async def _read_loop(self) -> None:
        """Open the stream and dispatch frames until it ends."""
        error: Optional[BaseException] = None

        try:
            if self.rate_limit is not None:
                self.rate_limit.check()

            logger.info(f"Connecting to stream: {self.url}")
            async with self.http_client.stream(
                "GET",
                self.url,
                headers={"Accept": self.codec.media_type, "Cache-Control": "no-cache"},
            ) as response:
                if self.rate_limit is not None:
                    self.rate_limit.update(response)
                if not response.is_success:
                    raise TransportError(
                        f"Stream request failed with status {response.status_code}",
                        status_code=response.status_code,
                    )

                async with aclosing(self.codec.frames(self._body(response))) as frames:
                    async for frame in frames:
                        if not self._owns_loop():
                            return
                        self._dispatch(self.codec.decode(frame))

        except asyncio.CancelledError:
            raise
        except httpx.HTTPError as e:
            error = TransportError(f"{type(e).__name__}: {e}")
            error.__cause__ = e
        except Exception as e:
            error = e

        if self._owns_loop() and self._state.is_active:
            self._fault(error or UnexpectedEndOfStream())

    async def _body(self, response: httpx.Response) -> AsyncIterator[bytes]:
        """Yield body chunks, marking the stream connected on the first byte."""
        async for chunk in response.aiter_bytes():
            if not chunk:
                continue
            if self._state is ConnectionState.CONNECTING and self._owns_loop():
                self._set_state(ConnectionState.CONNECTED)
                self.metrics.connections += 1
                logger.info(f"Connected to stream: {self.url}")
                self.on_connected.emit(self)
            yield chunk

    def _dispatch(self, result: FrameResult) -> None:
        """Publish one decoded frame."""
        self.metrics.frames_received += 1

        if isinstance(result, Heartbeat):
            self.metrics.heartbeats_received += 1
            logger.debug(f"Heartbeat from {self.url}")
            self.on_heartbeat.emit(self)
        elif isinstance(result, Message):
            self.metrics.messages_received += 1
            self.on_message.emit(self, result.value)
        else:
            self.metrics.malformed_frames += 1
            logger.warning(
                f"Skipping malformed frame from {self.url}: {result.error} "
                f"(total malformed: {self.metrics.malformed_frames})"
            )

    def _fault(self, error: BaseException) -> None:
        """Read loop ended on its own while the stream was wanted."""
        self._read_task = None
        self.metrics.faults += 1
        self._set_state(ConnectionState.FAULTED)
        logger.error(f"Stream {self.url} failed: {error}")
        self.on_error.emit(self, error)

    def _owns_loop(self) -> bool:
        """Whether the running task is this client's current read loop."""
        return self._read_task is not None and asyncio.current_task() is self._read_task

    # =========================================================================
    # Reconnection
    # =========================================================================

    def _handle_connected(self, client: "StreamClient[T]") -> None:
        self._reconnect_delay = self.backoff.reset()
        self._cancel_reconnect()

    def _handle_disconnected(self, client: "StreamClient[T]") -> None:
        self._reconnect_delay = self.backoff.reset()
        self._cancel_reconnect()

    def _handle_error(self, client: "StreamClient[T]", error: BaseException) -> None:
        self._cancel_reconnect()
        delay = self._reconnect_delay
        logger.info(f"Reconnecting to {self.url} in {delay:.1f}s")
        self._reconnect_task = asyncio.get_running_loop().create_task(
            self._reconnect_after(delay),
            name=f"stream-reconnect:{self.url}",
        )

    async def _reconnect_after(self, delay: float) -> None:
        """Retry once after `delay`, then advance the backoff interval."""
        await asyncio.sleep(delay)

        if self._reconnect_task is not asyncio.current_task():
            return
        self._reconnect_task = None

        # Recovered or stopped while we waited
        if self._disposed or self._state is not ConnectionState.FAULTED:
            self._reconnect_delay = self.backoff.reset()
            return

        self.metrics.reconnect_count += 1
        logger.info(f"Reconnect attempt {self.metrics.reconnect_count} to {self.url}")
        self.connect()
        self._reconnect_delay = self.backoff.next(self._reconnect_delay)

    def _cancel_reconnect(self) -> None:
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _set_state(self, new_state: ConnectionState) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state
        logger.info(f"Stream {self.url}: {old_state.value} -> {new_state.value}")
        self.on_state_changed.emit(self, old_state, new_state)

    def _ensure_not_disposed(self) -> None:
        if self._disposed:
            raise ClientDisposedError(f"Stream client for {self.url} has been disposed")
