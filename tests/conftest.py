"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any module that reads settings is
imported, so every test sees the same limiter policy.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("LIMITER_ENABLED", "true")
os.environ.setdefault("LIMITER_NAMESPACE", "test")
# A slow-refilling bucket keeps HTTP tests independent of wall-clock windows.
os.environ.setdefault("LIMITER_ALGORITHM", "token_bucket")
os.environ.setdefault("LIMITER_MAX_TOKENS", "3")
os.environ.setdefault("LIMITER_REFILL_RATE", "1")
os.environ.setdefault("LIMITER_REFILL_INTERVAL", "1h")
os.environ.setdefault("LOG_FORMAT", "json")

import pytest

from kvlimit.adapters.kv.local import LocalKV

# A window-aligned instant: divisible by every window used in the tests.
START_SECONDS = 1_700_000_400.0


class FakeClock:
    """Deterministic clock returning UNIX seconds, shared by store and algorithms."""

    def __init__(self, start: float = START_SECONDS) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def now_ms(self) -> int:
        return int(self.current * 1000)

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv(clock: FakeClock):
    store = LocalKV(clock=clock)
    yield store
    store.clear()
