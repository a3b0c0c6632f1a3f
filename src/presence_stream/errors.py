"""
Error Taxonomy
==============

Exceptions raised by the presence stream client and its request helpers.

Recoverability:
    - TransportError: recoverable, the stream client backs off and retries
    - UnexpectedEndOfStream: a TransportError, same handling
    - MalformedFrame: recoverable, the frame is skipped and the loop continues
    - ClientDisposedError: fatal usage error, never retried
    - ValidationError: bad HashedIdentifier lengths, raised before any network
      call. LoginStateUpdate fields are checked by pydantic and fail with
      pydantic.ValidationError instead. Both subclass ValueError.
    - RateLimitedError: a request refused locally while rate limited

Redundant connect/disconnect calls are NOT errors. They return silently.
"""

from typing import Optional


class PresenceStreamError(Exception):
    """Base class for all presence stream errors."""


class TransportError(PresenceStreamError):
    """
    The connection to the remote endpoint failed.

    Attributes:
        status_code: HTTP status code when the server answered, else None
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnexpectedEndOfStream(TransportError):
    """The server closed the stream while the client still wanted it."""

    def __init__(self, message: str = "Connection to stream suddenly closed.") -> None:
        super().__init__(message)


class MalformedFrame(PresenceStreamError):
    """
    A single frame could not be decoded.

    Attributes:
        frame: The raw frame (line or unpacked object) that failed
    """

    def __init__(self, message: str, frame: object = None) -> None:
        super().__init__(message)
        self.frame = frame


class ClientDisposedError(PresenceStreamError, RuntimeError):
    """An operation was attempted on a disposed stream client."""


class ValidationError(PresenceStreamError, ValueError):
    """Request data failed validation before reaching the network."""


class RateLimitedError(PresenceStreamError):
    """
    A request was refused locally because the server rate limited us.

    Attributes:
        retry_in: Seconds until requests are allowed again
    """

    def __init__(self, retry_in: float) -> None:
        super().__init__(f"Rate limited, retry in {retry_in:.1f}s")
        self.retry_in = retry_in
