"""
Reconnect Backoff
=================

Linear, capped backoff between reconnection attempts.

    next(interval) = min(interval + increment, maximum)
    reset()        = minimum

The policy is pure. The only state is the current interval, which
belongs to the StreamClient using it.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BackoffPolicy:
    """
    Backoff calculator for reconnection attempts.

    Attributes:
        minimum: First wait after a failure (seconds)
        maximum: Upper bound on the wait (seconds)
        increment: Added to the wait after each failed attempt (seconds)
    """

    minimum: float = 5.0
    maximum: float = 60.0
    increment: float = 5.0

    def __post_init__(self) -> None:
        if self.minimum < 0:
            raise ValueError("minimum must be >= 0")
        if self.increment < 0:
            raise ValueError("increment must be >= 0")
        if self.maximum < self.minimum:
            raise ValueError("maximum must be >= minimum")

    def reset(self) -> float:
        """Interval to use after a successful connection."""
        return self.minimum

    def next(self, interval: float) -> float:
        """Interval to use after another failed attempt."""
        return min(interval + self.increment, self.maximum)

    def after_failures(self, failures: int) -> float:
        """Interval after `failures` consecutive failed attempts."""
        return min(self.minimum + failures * self.increment, self.maximum)
