"""Per-key rate limiting engine.

Token bucket admission per client key, kept in a registry that evicts
idle keys in the background.
"""

from ratekeeper.app.ratelimit.models import (
    DEFAULT_CAPACITY,
    DEFAULT_IDLE_THRESHOLD,
    DEFAULT_RATE,
    DEFAULT_SWEEP_INTERVAL,
    RateLimitConfig,
    Visitor,
)
from ratekeeper.app.ratelimit.registry import (
    LimiterRegistry,
    get_default_registry,
    shutdown_default_registry,
)
from ratekeeper.app.ratelimit.token_bucket import TokenBucket

__all__ = [
    # Models
    "RateLimitConfig",
    "Visitor",
    "DEFAULT_RATE",
    "DEFAULT_CAPACITY",
    "DEFAULT_SWEEP_INTERVAL",
    "DEFAULT_IDLE_THRESHOLD",
    # Engine
    "TokenBucket",
    "LimiterRegistry",
    "get_default_registry",
    "shutdown_default_registry",
]
