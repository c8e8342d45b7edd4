"""Admission algorithm interfaces.

Every algorithm is a policy fixed at construction time plus one coroutine
mapping ``(context, identifier)`` to a :class:`RatelimitResponse`. All state
lives in the key-value store carried by the context, so one algorithm
instance can serve any number of namespaces and concurrent callers.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Callable

from kvlimit.adapters.kv.base import AbstractKV

KEY_DELIMITER = ":"


@dataclass(frozen=True)
class Context:
    """Store and namespace an algorithm evaluates against."""

    kv: AbstractKV
    namespace: str


@dataclass(frozen=True)
class RatelimitResponse:
    """Result of one admission decision.

    Attributes:
        success: Whether the request is admitted.
        limit: Maximum admissions for the policy.
        remaining: Admissions left (fractional for sliding window, never < 0).
        reset: UNIX epoch milliseconds when the current period rolls over or
            the next admission could succeed.
    """

    success: bool
    limit: int
    remaining: int | float
    reset: int

    def retry_after_ms(self, now_ms: int) -> int:
        """Milliseconds from ``now_ms`` until ``reset`` (0 when already past)."""
        return max(0, self.reset - now_ms)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def build_key(*parts: object) -> str:
    """Join key parts with the store key delimiter."""
    return KEY_DELIMITER.join(str(part) for part in parts)


class AbstractRatelimiter(ABC):
    """Interface for admission algorithms."""

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock

    @property
    @abstractmethod
    def limit(self) -> int:
        """Maximum admissions reported in every response."""
        raise NotImplementedError

    @abstractmethod
    async def evaluate(self, ctx: Context, identifier: str) -> RatelimitResponse:
        """Decide whether ``identifier`` may proceed right now.

        Args:
            ctx: Store and namespace to evaluate against.
            identifier: Caller identifier (user id, IP address, API key).

        Returns:
            RatelimitResponse describing the decision.
        """
        raise NotImplementedError

    def now_ms(self) -> int:
        """Current time in UNIX epoch milliseconds, read from the injected clock."""
        return int(self._clock() * 1000)


def require_positive(name: str, value: float) -> None:
    if value <= 0:
        raise ValueError(f"{name} must be > 0")
