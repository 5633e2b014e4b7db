"""Rate limiting data models.

This module contains the limiter configuration and the per-key registry
record.
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ratekeeper.app.ratelimit.token_bucket import TokenBucket

logger = logging.getLogger(__name__)

DEFAULT_RATE = 1.0
DEFAULT_CAPACITY = 5
DEFAULT_SWEEP_INTERVAL = 60.0
DEFAULT_IDLE_THRESHOLD = 180.0

# Shortest accepted sweep interval and idle threshold, in seconds
MIN_PERIOD = 1.0


@dataclass(frozen=True)
class RateLimitConfig:
    """Limiter configuration shared by every key of a registry.

    Attributes:
        rate: Tokens added per second per key
        capacity: Maximum burst tokens per key
        sweep_interval: Seconds between idle-eviction passes
        idle_threshold: Seconds of inactivity after which a key is evicted
    """
    rate: float = DEFAULT_RATE
    capacity: int = DEFAULT_CAPACITY
    sweep_interval: float = DEFAULT_SWEEP_INTERVAL
    idle_threshold: float = DEFAULT_IDLE_THRESHOLD

    def normalized(self) -> "RateLimitConfig":
        """Return a copy with every invalid field replaced by its default.

        Each correction is logged as a warning so that a misconfigured
        deployment is visible without taking the admission path down.
        """
        corrections = {}

        if not _is_positive_number(self.rate):
            corrections["rate"] = DEFAULT_RATE
        if not _is_valid_capacity(self.capacity):
            corrections["capacity"] = DEFAULT_CAPACITY
        if not _is_valid_period(self.sweep_interval):
            corrections["sweep_interval"] = DEFAULT_SWEEP_INTERVAL
        if not _is_valid_period(self.idle_threshold):
            corrections["idle_threshold"] = DEFAULT_IDLE_THRESHOLD

        for name, default in corrections.items():
            logger.warning(
                f"Invalid rate limit {name}={getattr(self, name)!r}, using default {default!r}",
                extra={"setting": name, "default": default},
            )

        if not corrections:
            return self
        return replace(self, **corrections)


@dataclass
class Visitor:
    """Registry record for one client key."""
    bucket: "TokenBucket"
    last_seen: float


def _is_positive_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


def _is_valid_capacity(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return value >= 1


def _is_valid_period(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value >= MIN_PERIOD
