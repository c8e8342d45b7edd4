"""Sliding-window admission algorithm.

Approximates a continuous window with two adjacent fixed windows: the
previous window's count is weighted by the share of it still covered by a
window ending now. O(1) storage and work per decision, at the cost of being
an estimate rather than an exact request log.
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


class SlidingWindow(AbstractRatelimiter):
    """Allow roughly ``tokens`` requests per rolling ``window``."""

    def __init__(
        self,
        tokens: int,
        window: str,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(clock=clock)
        require_positive("tokens", tokens)
        self._tokens = tokens
        self._window_ms = ms(window)
        require_positive("window", self._window_ms)

    @property
    def limit(self) -> int:
        return self._tokens

    @property
    def window_ms(self) -> int:
        return self._window_ms

    async def evaluate(self, ctx: Context, identifier: str) -> RatelimitResponse:
        now = self.now_ms()
        current_window = now // self._window_ms
        previous_window = current_window - 1
        current_key = build_key(ctx.namespace, identifier, current_window)
        previous_key = build_key(ctx.namespace, identifier, previous_window)

        current = await ctx.kv.incr(current_key)
        if current == 1:
            await ctx.kv.pexpire(current_key, self._window_ms)

        # Separate read: may be slightly stale next to concurrent increments.
        previous = int(await ctx.kv.get(previous_key) or 0)

        percentage = (now % self._window_ms) / self._window_ms
        estimate = previous * (1 - percentage) + current
        reset = (current_window + 1) * self._window_ms

        if estimate > self._tokens:
            return RatelimitResponse(success=False, limit=self._tokens, remaining=0, reset=reset)

        return RatelimitResponse(
            success=True,
            limit=self._tokens,
            remaining=max(0, round(self._tokens - estimate, 1)),
            reset=reset,
        )
