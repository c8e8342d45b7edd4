"""Admission algorithms: fixed window, sliding window and token bucket."""

from kvlimit.adapters.rate_limit.base import AbstractRatelimiter, Context, RatelimitResponse
from kvlimit.adapters.rate_limit.fixed_window import FixedWindow
from kvlimit.adapters.rate_limit.sliding_window import SlidingWindow
from kvlimit.adapters.rate_limit.token_bucket import TokenBucket

__all__ = [
    "AbstractRatelimiter",
    "Context",
    "FixedWindow",
    "RatelimitResponse",
    "SlidingWindow",
    "TokenBucket",
]
