"""
Framing Codecs
==============

Turn a response body into frames, and frames into typed records.

Two interchangeable strategies share one contract:

    frames(chunks)  async generator: body byte chunks -> raw frames
    decode(frame)   raw frame -> Heartbeat | Message | Malformed

TextFrameCodec:
    Server-sent events. One frame per line. Blank lines, a lone ":" and
    other ":" comments are heartbeats. "data:" payloads are JSON.

BinaryFrameCodec:
    A continuous msgpack stream. An empty array (0x90) is a heartbeat.
    Everything else is a record in the model's msgpack schema.

Design Rules:
    - Frames split across reads are buffered until complete
    - A malformed frame is reported, never raised
    - Framing errors that lose frame alignment ARE raised (TransportError)
"""

import codecs
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Generic, Protocol, Type, TypeVar, Union
from urllib.parse import unquote

import msgpack
from pydantic import ValidationError as PydanticValidationError

from presence_stream.errors import MalformedFrame, TransportError
from presence_stream.models.events import StreamRecord


logger = logging.getLogger(__name__)

T = TypeVar("T", bound=StreamRecord)


# =============================================================================
# Frame Results
# =============================================================================

@dataclass(frozen=True, slots=True)
class Heartbeat:
    """A content-free keep-alive frame."""


@dataclass(frozen=True, slots=True)
class Message(Generic[T]):
    """A successfully decoded record."""

    value: T


@dataclass(frozen=True, slots=True)
class Malformed:
    """A frame that could not be decoded. The stream continues."""

    error: MalformedFrame


FrameResult = Union[Heartbeat, Message, Malformed]

HEARTBEAT = Heartbeat()


class FrameCodec(Protocol[T]):
    """
    Protocol for framing strategies.

    Implementations:
        - TextFrameCodec: line-delimited server-sent events
        - BinaryFrameCodec: msgpack object stream
    """

    media_type: str

    def frames(self, chunks: AsyncIterator[bytes]) -> AsyncIterator[Any]:
        """Yield raw frames from the response body."""
        ...

    def decode(self, frame: Any) -> FrameResult:
        """Classify and decode one raw frame."""
        ...


# =============================================================================
# Text (server-sent events)
# =============================================================================

_SSE_IGNORED_FIELDS = ("event:", "id:", "retry:")
_DATA_PREFIX = "data:"

# Longest partial line buffered while waiting for its newline
DEFAULT_MAX_LINE_LENGTH = 1024 * 1024


class TextFrameCodec(Generic[T]):
    """
    Line-based codec for server-sent event streams.

    Example:
        codec = TextFrameCodec(AnnouncementUpdate)
        codec.decode("data: {\"message\": \"hi\", \"kind\": \"Critical\"}")
        # -> Message(value=AnnouncementUpdate(...))
        codec.decode(":")
        # -> Heartbeat()
    """

    media_type = "text/event-stream"

    def __init__(self, model: Type[T], max_line_length: int = DEFAULT_MAX_LINE_LENGTH) -> None:
        self.model = model
        self.max_line_length = max_line_length

    async def frames(self, chunks: AsyncIterator[bytes]) -> AsyncIterator[str]:
        """
        Split the body into lines.

        Multi-byte characters and lines split across chunks are
        reassembled. SSE field lines other than data are dropped here.
        A partial line longer than max_line_length raises TransportError.
        """
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        pending = ""

        async for chunk in chunks:
            pending += decoder.decode(chunk)
            *lines, pending = pending.split("\n")
            for line in lines:
                line = line.rstrip("\r")
                if line.startswith(_SSE_IGNORED_FIELDS):
                    continue
                yield line

            if len(pending) > self.max_line_length:
                raise TransportError(
                    f"Line exceeds {self.max_line_length} characters without a newline"
                )

        pending += decoder.decode(b"", final=True)
        if pending and not pending.startswith(_SSE_IGNORED_FIELDS):
            yield pending.rstrip("\r")

    def decode(self, frame: str) -> FrameResult:
        text = unquote(frame).strip()

        # Blank lines, ":" and other SSE comments keep the connection alive
        if not text or text.startswith(":"):
            return HEARTBEAT

        if text.startswith(_DATA_PREFIX):
            text = text[len(_DATA_PREFIX):].strip()
            if not text:
                return HEARTBEAT

        try:
            return Message(self.model.model_validate_json(text))
        except PydanticValidationError as e:
            return Malformed(MalformedFrame(f"Invalid {self.model.__name__} payload: {e}", frame))


# =============================================================================
# Binary (msgpack)
# =============================================================================

class UnkeyedMap(list):
    """Key/value pairs of a msgpack map whose keys cannot index a dict."""


def _map_from_pairs(pairs) -> Union[dict, UnkeyedMap]:
    items = list(pairs)
    try:
        return dict(items)
    except TypeError:
        return UnkeyedMap(items)


class BinaryFrameCodec(Generic[T]):
    """
    Codec for a continuous msgpack object stream.

    Each top-level msgpack object is one frame. The Unpacker buffers
    partial objects until the rest of their bytes arrive.

    A complete object with bad content (invalid UTF-8 in a string, a map
    keyed by arrays) still comes out as a frame and decodes to Malformed.
    Only bytes that are not msgpack at all raise TransportError.

    Example:
        codec = BinaryFrameCodec(LoginStateUpdate)
        codec.decode([])
        # -> Heartbeat()
    """

    media_type = "application/msgpack"

    def __init__(self, model: Type[T]) -> None:
        self.model = model

    async def frames(self, chunks: AsyncIterator[bytes]) -> AsyncIterator[Any]:
        unpacker = msgpack.Unpacker(
            raw=False,
            unicode_errors="surrogateescape",
            strict_map_key=False,
            object_pairs_hook=_map_from_pairs,
        )

        async for chunk in chunks:
            unpacker.feed(chunk)
            try:
                for obj in unpacker:
                    yield obj
            except (ValueError, msgpack.UnpackException) as e:
                # Frame boundaries are lost, only a fresh stream can recover
                raise TransportError(f"Invalid msgpack data in stream: {e}") from e

    def decode(self, frame: Any) -> FrameResult:
        if isinstance(frame, (list, tuple)) and len(frame) == 0:
            return HEARTBEAT

        if isinstance(frame, UnkeyedMap):
            return Malformed(MalformedFrame(
                f"Invalid {self.model.__name__} frame: map keys must be hashable", frame
            ))

        try:
            return Message(self.model.from_msgpack(frame))
        except (TypeError, ValueError) as e:
            return Malformed(MalformedFrame(f"Invalid {self.model.__name__} frame: {e}", frame))
