"""Request admission decisions backed by a key-value store."""

from kvlimit.adapters.kv.base import AbstractKV
from kvlimit.adapters.kv.local import LocalKV
from kvlimit.adapters.rate_limit.base import AbstractRatelimiter, Context, RatelimitResponse
from kvlimit.adapters.rate_limit.fixed_window import FixedWindow
from kvlimit.adapters.rate_limit.sliding_window import SlidingWindow
from kvlimit.adapters.rate_limit.token_bucket import TokenBucket
from kvlimit.core.errors import (
    AppError,
    InvalidDurationError,
    NonNumericValueError,
    StoreAppError,
    UnrecognizedUnitError,
    ValidationAppError,
)
from kvlimit.services.ratelimit import Ratelimit
from kvlimit.utils.duration import ms

__all__ = [
    "AbstractKV",
    "AbstractRatelimiter",
    "AppError",
    "Context",
    "FixedWindow",
    "InvalidDurationError",
    "LocalKV",
    "NonNumericValueError",
    "Ratelimit",
    "RatelimitResponse",
    "SlidingWindow",
    "StoreAppError",
    "TokenBucket",
    "UnrecognizedUnitError",
    "ValidationAppError",
    "ms",
]
