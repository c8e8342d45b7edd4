"""Limiter facade binding a namespace and an algorithm to a key-value store.

Usage:
    limiter = Ratelimit(
        "api",
        kv=LocalKV(),
        limiter=Ratelimit.sliding_window(50, "10s"),
    )
    result = await limiter.decide("user-123")
"""

from __future__ import annotations

import hashlib
import logging
import time
from typing import Callable

from kvlimit.adapters.kv.base import AbstractKV
from kvlimit.adapters.rate_limit.base import AbstractRatelimiter, Context, RatelimitResponse
from kvlimit.adapters.rate_limit.fixed_window import FixedWindow
from kvlimit.adapters.rate_limit.sliding_window import SlidingWindow
from kvlimit.adapters.rate_limit.token_bucket import DEFAULT_TTL_MULTIPLIER, TokenBucket

logger = logging.getLogger(__name__)


def hash_identifier(identifier: str) -> str:
    """Hash an identifier for logging without exposing it."""
    return hashlib.sha256(identifier.encode()).hexdigest()[:16]


class Ratelimit:
    """Rate limiter for one namespace.

    Holds no mutable state of its own: everything lives in the store, so a
    single instance can be shared by concurrent callers and several
    processes pointed at one shared store enforce one limit.
    """

    def __init__(self, namespace: str, *, kv: AbstractKV, limiter: AbstractRatelimiter) -> None:
        """Bind ``limiter`` to ``kv`` under ``namespace``.

        Raises:
            ValueError: If namespace is empty.
        """
        if not namespace:
            raise ValueError("namespace must be a non-empty string")

        self._namespace = namespace
        self._kv = kv
        self._limiter = limiter
        self._context = Context(kv=kv, namespace=namespace)

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def limiter(self) -> AbstractRatelimiter:
        return self._limiter

    def now_ms(self) -> int:
        """Current time as seen by the algorithm, so ``reset`` can be compared to it."""
        return self._limiter.now_ms()

    async def decide(self, identifier: str) -> RatelimitResponse:
        """Make an admission decision for ``identifier``.

        Store errors propagate unchanged; whether a failing store should fail
        open or closed is up to the caller.

        Args:
            identifier: Caller identifier (user id, IP address, API key).

        Returns:
            RatelimitResponse with the decision and its metadata.

        Raises:
            ValueError: If identifier is empty.
        """
        if not identifier:
            raise ValueError("identifier must be a non-empty string")

        result = await self._limiter.evaluate(self._context, identifier)
        logger.debug(
            "ratelimit.decision",
            extra={
                "namespace": self._namespace,
                "algorithm": type(self._limiter).__name__,
                "identifier_hash": hash_identifier(identifier),
                "success": result.success,
                "remaining": result.remaining,
                "reset": result.reset,
            },
        )
        return result

    @staticmethod
    def fixed_window(
        tokens: int,
        window: str,
        *,
        clock: Callable[[], float] = time.time,
    ) -> FixedWindow:
        """Fixed window limiter: ``tokens`` requests per ``window``."""
        return FixedWindow(tokens, window, clock=clock)

    @staticmethod
    def sliding_window(
        tokens: int,
        window: str,
        *,
        clock: Callable[[], float] = time.time,
    ) -> SlidingWindow:
        """Sliding window limiter: about ``tokens`` requests per rolling ``window``."""
        return SlidingWindow(tokens, window, clock=clock)

    @staticmethod
    def token_bucket(
        refill_rate: int | float,
        refill_interval: str,
        max_tokens: int,
        *,
        ttl_multiplier: float = DEFAULT_TTL_MULTIPLIER,
        clock: Callable[[], float] = time.time,
    ) -> TokenBucket:
        """Token bucket limiter refilling ``refill_rate`` tokens per ``refill_interval``."""
        return TokenBucket(
            refill_rate,
            refill_interval,
            max_tokens,
            ttl_multiplier=ttl_multiplier,
            clock=clock,
        )
