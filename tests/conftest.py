"""Shared fixtures for ratekeeper tests."""

import logging

import pytest

from ratekeeper.app.ratelimit import LimiterRegistry, RateLimitConfig


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_registry(clock):
    """Build registries on the fake clock without a sweeper thread."""
    created = []

    def _make(**overrides) -> LimiterRegistry:
        config = RateLimitConfig(**overrides)
        registry = LimiterRegistry(config, clock=clock, autostart=False)
        created.append(registry)
        return registry

    yield _make

    for registry in created:
        registry.shutdown()


@pytest.fixture(autouse=True)
def propagate_ratekeeper_logs():
    """Let caplog see ratekeeper records after setup_logging() has run."""
    ratekeeper_logger = logging.getLogger("ratekeeper")
    original = ratekeeper_logger.propagate
    ratekeeper_logger.propagate = True
    yield
    ratekeeper_logger.propagate = original
