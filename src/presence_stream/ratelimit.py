"""
Rate Limit Clock
================

Process-wide pause after the server answers 429 Too Many Requests.

One clock is shared by the one-shot requests and the stream clients, so a
rate limit hit by either pauses both.

Reset time, in order of preference:
    1. ratelimit-reset header (seconds)
    2. retry-after header (seconds)
    3. FALLBACK_PAUSE_SECONDS
"""

import logging
import time
from typing import Callable, Optional

import httpx

from presence_stream.errors import RateLimitedError


logger = logging.getLogger(__name__)


FALLBACK_PAUSE_SECONDS = 60.0


class RateLimitClock:
    """
    Tracks when requests are allowed again.

    Example:
        clock = RateLimitClock()
        clock.check()              # raises RateLimitedError while paused
        response = await client.get("api/metadata")
        clock.update(response)     # pauses on 429
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """
        Initialize rate limit clock.

        Args:
            clock: Monotonic time source in seconds (injectable for tests)
        """
        self._clock = clock
        self._reset_at: float = 0.0

    @property
    def remaining(self) -> float:
        """Seconds until requests are allowed again (0 if not limited)."""
        return max(0.0, self._reset_at - self._clock())

    @property
    def is_limited(self) -> bool:
        return self.remaining > 0

    def check(self) -> None:
        """
        Refuse to proceed while rate limited.

        Raises:
            RateLimitedError: The reset time has not been reached
        """
        remaining = self.remaining
        if remaining > 0:
            raise RateLimitedError(remaining)

    def update(self, response: httpx.Response) -> None:
        """Pause if the response says we are rate limited."""
        if response.status_code != httpx.codes.TOO_MANY_REQUESTS:
            return

        pause = self._header_seconds(response, "ratelimit-reset")
        source = "ratelimit-reset"
        if pause is None:
            pause = self._header_seconds(response, "retry-after")
            source = "retry-after"
        if pause is None:
            pause = FALLBACK_PAUSE_SECONDS
            source = "fallback"

        self._reset_at = max(self._reset_at, self._clock() + pause)
        logger.warning(f"Rate limited by the API, pausing requests for {pause:.0f}s ({source})")

    def clear(self) -> None:
        """Forget any pending pause."""
        self._reset_at = 0.0

    @staticmethod
    def _header_seconds(response: httpx.Response, name: str) -> Optional[float]:
        value = response.headers.get(name)
        if value is None:
            return None
        try:
            return max(0.0, float(value.strip()))
        except ValueError:
            logger.warning(f"Ignoring unparseable {name} header: {value!r}")
            return None
