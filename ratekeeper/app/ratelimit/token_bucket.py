"""Token bucket admission primitive for a single client key."""

import math
import threading
import time
from typing import Callable


class TokenBucket:
    """Continuously refilling token counter.

    A fresh bucket starts full, so a new client gets its whole burst
    allowance. Tokens are refilled lazily on every check in proportion to
    the time elapsed since the previous refill, never above capacity.
    Fractional tokens are kept; admission requires one whole token.

    Usage:
        bucket = TokenBucket(rate=1.0, capacity=5)
        if bucket.try_consume():
            # admit
    """

    def __init__(
        self,
        rate: float,
        capacity: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize a full bucket.

        Args:
            rate: Tokens added per second
            capacity: Maximum number of tokens held (burst size)
            clock: Monotonic time source in seconds

        Raises:
            ValueError: If rate or capacity is not a positive finite number
        """
        if not math.isfinite(rate) or rate <= 0:
            raise ValueError(f"rate must be a positive finite number, got {rate!r}")
        if not math.isfinite(capacity) or capacity <= 0:
            raise ValueError(f"capacity must be a positive finite number, got {capacity!r}")

        self.rate = float(rate)
        self.capacity = float(capacity)
        self._clock = clock
        self._tokens = self.capacity
        self._last_refill = clock()
        self._lock = threading.Lock()

    @property
    def tokens(self) -> float:
        """Currently available tokens, after refilling up to now."""
        with self._lock:
            self._refill()
            return self._tokens

    def try_consume(self) -> bool:
        """Take one token if available.

        Returns:
            True if the unit of work is admitted, False if rejected
        """
        with self._lock:
            self._refill()
            if self._tokens >= 1:
                self._tokens -= 1
                return True
            return False

    def _refill(self) -> None:
        now = self._clock()
        # _last_refill never moves backwards
        if now <= self._last_refill:
            return
        elapsed = now - self._last_refill
        self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)
        self._last_refill = now

    def __repr__(self) -> str:
        return (
            f"TokenBucket(rate={self.rate}, capacity={self.capacity}, "
            f"tokens={self._tokens:.3f})"
        )
