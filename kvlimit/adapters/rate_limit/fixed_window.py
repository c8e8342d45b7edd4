"""Fixed-window admission algorithm.

Time is cut into windows of ``window`` length; each (namespace, identifier,
window index) gets its own counter that expires with the window. Attempts are
counted, not admissions: a denied call still consumes a counter unit.
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


class FixedWindow(AbstractRatelimiter):
    """Allow ``tokens`` requests per fixed ``window``."""

    def __init__(
        self,
        tokens: int,
        window: str,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the fixed-window policy.

        Args:
            tokens: Maximum requests per window.
            window: Window duration, e.g. ``"10s"``.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If tokens or the parsed window are not positive.
            InvalidDurationError: If ``window`` cannot be parsed.
        """
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
        bucket = now // self._window_ms
        key = build_key(ctx.namespace, identifier, bucket)

        current = await ctx.kv.incr(key)
        if current == 1:
            # First hit in this window: let the counter die with it.
            await ctx.kv.pexpire(key, self._window_ms)

        return RatelimitResponse(
            success=current <= self._tokens,
            limit=self._tokens,
            remaining=max(0, self._tokens - current),
            reset=(bucket + 1) * self._window_ms,
        )
