"""Per-key limiter registry with background idle eviction.

Each client key gets its own TokenBucket, created on first sight. A
background sweeper thread periodically removes keys that have been idle
for longer than the configured threshold, which bounds memory use.
"""

import logging
import threading
import time
from typing import Callable, Dict, Hashable, Optional

from ratekeeper.app.ratelimit.models import RateLimitConfig, Visitor
from ratekeeper.app.ratelimit.token_bucket import TokenBucket

logger = logging.getLogger(__name__)


class LimiterRegistry:
    """Maps client keys to independent token buckets.

    Locking:
    - The registry lock guards the key map and every visitor's last_seen.
    - Each bucket has its own lock for the refill/consume arithmetic, so
      checks for unrelated keys only contend on the short map lookup.

    Eviction never removes a key that is being checked: check() refreshes
    last_seen before releasing the registry lock, and sweep() compares
    last_seen under that same lock.

    After shutdown() the registry keeps admitting and rejecting; only the
    automatic eviction stops. sweep() can still be called manually and
    start() resumes the sweeper.

    Usage:
        registry = LimiterRegistry(RateLimitConfig(rate=2.0, capacity=10))
        if not registry.check(client_ip):
            # reject with 429
        ...
        registry.shutdown()
    """

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        autostart: bool = True,
    ):
        """Initialize the registry and start the sweeper.

        Args:
            config: Limiter configuration (None = defaults). Invalid values
                are replaced with defaults and logged.
            clock: Monotonic time source in seconds, shared with the buckets
            autostart: Start the background sweeper immediately
        """
        self.config = (config or RateLimitConfig()).normalized()
        self._clock = clock
        self._visitors: Dict[Hashable, Visitor] = {}
        self._lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
        self._thread_lock = threading.Lock()

        logger.info(
            f"Rate limiter created (rate={self.config.rate}/s, "
            f"capacity={self.config.capacity}, "
            f"sweep_interval={self.config.sweep_interval}s, "
            f"idle_threshold={self.config.idle_threshold}s)"
        )

        if autostart:
            self.start()

    def check(self, key: Hashable) -> bool:
        """Decide whether one unit of work for key may proceed.

        Args:
            key: Client identity, any hashable value

        Returns:
            True to admit, False to reject
        """
        with self._lock:
            now = self._clock()
            visitor = self._visitors.get(key)
            if visitor is None:
                bucket = TokenBucket(
                    rate=self.config.rate,
                    capacity=self.config.capacity,
                    clock=self._clock,
                )
                visitor = Visitor(bucket=bucket, last_seen=now)
                self._visitors[key] = visitor
            elif now > visitor.last_seen:
                visitor.last_seen = now
            bucket = visitor.bucket

        return bucket.try_consume()

    def sweep(self) -> int:
        """Remove every key idle for at least the idle threshold.

        Returns:
            Number of evicted keys
        """
        with self._lock:
            now = self._clock()
            idle_keys = [
                key for key, visitor in self._visitors.items()
                if now - visitor.last_seen >= self.config.idle_threshold
            ]
            for key in idle_keys:
                del self._visitors[key]
            remaining = len(self._visitors)

        if idle_keys:
            logger.debug(f"Evicted {len(idle_keys)} idle keys, {remaining} remaining")
        return len(idle_keys)

    def start(self) -> None:
        """Start the background sweeper thread (no-op if already running)."""
        with self._thread_lock:
            if self._thread is not None and self._thread.is_alive():
                logger.debug("Rate limiter sweeper already running")
                return

            # Each sweeper owns its stop event; a thread that outlived a
            # timed-out shutdown keeps its event set and exits on its own.
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._sweep_loop,
                args=(self._stop_event,),
                name="ratekeeper-sweeper",
                daemon=True,
            )
            self._thread.start()
        logger.info(f"Started rate limiter sweeper (interval: {self.config.sweep_interval}s)")

    def shutdown(self, timeout: float = 5.0) -> None:
        """Stop the background sweeper and wait for it to exit.

        Args:
            timeout: Seconds to wait for the sweeper thread
        """
        with self._thread_lock:
            thread = self._thread
            if thread is None:
                return
            self._stop_event.set()
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("Rate limiter sweeper did not stop within timeout")
            self._thread = None
        logger.info("Stopped rate limiter sweeper")

    @property
    def is_running(self) -> bool:
        """Whether the background sweeper is active."""
        thread = self._thread
        return thread is not None and thread.is_alive()

    def _sweep_loop(self, stop_event: threading.Event) -> None:
        """Background loop: sleep for one interval, then sweep."""
        while not stop_event.wait(timeout=self.config.sweep_interval):
            try:
                self.sweep()
            except Exception:
                logger.exception("Error during rate limiter sweep")

    def __len__(self) -> int:
        with self._lock:
            return len(self._visitors)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._visitors

    def __enter__(self) -> "LimiterRegistry":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()


_default_registry: Optional[LimiterRegistry] = None
_default_registry_lock = threading.Lock()


def get_default_registry() -> LimiterRegistry:
    """Get the process-wide LimiterRegistry, creating it on first use.

    The registry is built from the application settings. Creation happens
    under a lock, so concurrent first callers share one instance.
    """
    global _default_registry
    registry = _default_registry
    if registry is not None:
        return registry

    with _default_registry_lock:
        if _default_registry is None:
            from ratekeeper.app.core.config import settings

            _default_registry = LimiterRegistry(settings.rate_limit_config())
        return _default_registry


def shutdown_default_registry() -> None:
    """Stop and discard the process-wide registry, if one was created."""
    global _default_registry
    with _default_registry_lock:
        registry = _default_registry
        _default_registry = None
    if registry is not None:
        registry.shutdown()
