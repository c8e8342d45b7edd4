"""Token-bucket admission algorithm.

Each identifier owns one hash record ``{tokens, lastRefill}``. Every
``refill_interval`` credits ``refill_rate`` tokens up to ``max_tokens``; an
admitted request consumes one token, a denied one consumes nothing.

The read-modify-write below is not atomic: on a store without transactions,
two concurrent requests can both see the last token and both be admitted.
"""

from __future__ import annotations

import time
from typing import Callable

from kvlimit.adapters.rate_limit.base import (
    AbstractRatelimiter,
    Context,
    RatelimitResponse,
    build_key,
    require_positive,
)
from kvlimit.utils.duration import ms

BUCKET_SUFFIX = "bucket"
DEFAULT_TTL_MULTIPLIER = 2.0

Number = int | float


class TokenBucket(AbstractRatelimiter):
    """Refill ``refill_rate`` tokens every ``refill_interval``, capped at ``max_tokens``."""

    def __init__(
        self,
        refill_rate: Number,
        refill_interval: str,
        max_tokens: int,
        *,
        ttl_multiplier: float = DEFAULT_TTL_MULTIPLIER,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the token-bucket policy.

        Args:
            refill_rate: Tokens credited per elapsed interval.
            refill_interval: Interval duration, e.g. ``"1s"``.
            max_tokens: Bucket capacity (also the initial fill).
            ttl_multiplier: Record time-to-live, in refill intervals, re-armed
                on every access so dormant identifiers are eventually reclaimed.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If any numeric argument is not positive.
            InvalidDurationError: If ``refill_interval`` cannot be parsed.
        """
        super().__init__(clock=clock)
        require_positive("refill_rate", refill_rate)
        require_positive("max_tokens", max_tokens)
        require_positive("ttl_multiplier", ttl_multiplier)
        self._refill_rate = refill_rate
        self._max_tokens = max_tokens
        self._interval_ms = ms(refill_interval)
        require_positive("refill_interval", self._interval_ms)
        self._ttl_ms = int(self._interval_ms * ttl_multiplier)

    @property
    def limit(self) -> int:
        return self._max_tokens

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    async def evaluate(self, ctx: Context, identifier: str) -> RatelimitResponse:
        now = self.now_ms()
        key = build_key(ctx.namespace, identifier, BUCKET_SUFFIX)

        raw_tokens, raw_last_refill = await ctx.kv.hmget(key, "tokens", "lastRefill")
        tokens = _parse_number(raw_tokens) if raw_tokens else self._max_tokens
        last_refill = int(_parse_number(raw_last_refill)) if raw_last_refill else now

        ticks = (now - last_refill) // self._interval_ms
        tokens_to_add = ticks * self._refill_rate
        new_tokens = _normalize(min(self._max_tokens, tokens + tokens_to_add))

        success = new_tokens >= 1
        tokens_to_set = new_tokens - 1 if success else new_tokens
        # Only move the refill clock when whole ticks were credited.
        refill_date = now if tokens_to_add > 0 else last_refill

        await ctx.kv.hmset(
            key,
            {"tokens": str(tokens_to_set), "lastRefill": str(refill_date)},
        )
        await ctx.kv.pexpire(key, self._ttl_ms)

        return RatelimitResponse(
            success=success,
            limit=self._max_tokens,
            remaining=max(0, tokens_to_set),
            reset=refill_date + self._interval_ms,
        )


def _normalize(value: Number) -> Number:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _parse_number(raw: str) -> Number:
    return _normalize(float(raw))
