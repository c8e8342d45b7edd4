"""In-memory key-value store with per-key millisecond expiry.

Used for tests and single-process deployments. Values live in one mapping and
expiry handles in a second one owned by the store; a key whose deadline has
passed is treated as absent by every operation and reclaimed on access or on
the next write.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state. No operation awaits while
  holding it, so each call is also atomic on a single event loop.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from kvlimit.adapters.kv.base import AbstractKV
from kvlimit.core.errors import NonNumericValueError

logger = logging.getLogger(__name__)


@dataclass
class _ExpiryHandle:
    deadline_ms: int


class LocalKV(AbstractKV):
    """Reference implementation of :class:`AbstractKV` held in process memory.

    Hash values (``hmset``/``hmget``) are serialized as JSON objects.

    A plain ``set`` without ``px`` clears any expiry previously armed on the
    key, like most networked stores do; pass ``keepttl=True`` to keep it.
    ``incrby`` and ``hmset`` always keep the existing expiry.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize an empty store.

        Args:
            clock: Time source returning UNIX time in seconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._values: dict[str, str] = {}
        self._expirations: dict[str, _ExpiryHandle] = {}
        self._expired_evictions = 0

    def __len__(self) -> int:
        with self._lock:
            self._evict_expired_locked()
            return len(self._values)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"LocalKV(keys={len(self._values)}, expiring={len(self._expirations)}, "
            f"expired_evictions={self._expired_evictions})"
        )

    async def get(self, key: str) -> str | None:
        with self._lock:
            return self._read_locked(key)

    async def set(
        self,
        key: str,
        value: str,
        *,
        px: int | None = None,
        keepttl: bool = False,
    ) -> bool:
        """Store ``value`` at ``key``.

        Args:
            key: Key to write.
            value: String value to store.
            px: Optional time-to-live in milliseconds; replaces any prior one.
                A value <= 0 expires the key immediately.
            keepttl: Keep a previously armed expiry when ``px`` is omitted.

        Returns:
            True once the value is stored.
        """
        with self._lock:
            self._evict_expired_locked()
            self._values[key] = str(value)
            if px is not None:
                self._set_expiration_locked(key, px)
            elif not keepttl:
                self._expirations.pop(key, None)
            return True

    async def incrby(self, key: str, increment: int) -> int:
        with self._lock:
            self._evict_expired_locked()
            current = self._read_locked(key)
            if current is None:
                current = "0"
            try:
                parsed = int(current)
            except ValueError as exc:
                raise NonNumericValueError(
                    code="non_numeric_value",
                    message=f"Cannot increment non-numeric value stored at {key!r}",
                    details={"key": key},
                ) from exc

            next_value = parsed + increment
            self._values[key] = str(next_value)
            return next_value

    async def pexpire(self, key: str, milliseconds: int) -> int:
        with self._lock:
            if self._read_locked(key) is None:
                return 0
            self._set_expiration_locked(key, milliseconds)
            return 1

    async def hmget(self, key: str, *fields: str) -> list[str]:
        with self._lock:
            data = self._read_hash_locked(key)
        return [_stringify(data[field]) if field in data else "" for field in fields]

    async def hmset(self, key: str, mapping: Mapping[str, str]) -> bool:
        with self._lock:
            self._evict_expired_locked()
            data = self._read_hash_locked(key)
            data.update({field: str(value) for field, value in mapping.items()})
            self._values[key] = json.dumps(data)
            return True

    async def delete(self, *keys: str) -> int:
        with self._lock:
            for key in keys:
                self._values.pop(key, None)
                self._expirations.pop(key, None)
        return len(keys)

    async def ttl(self, key: str) -> int:
        """Return the remaining time-to-live of ``key`` in milliseconds.

        Returns:
            -2 when the key is absent, -1 when it has no expiry.
        """
        with self._lock:
            if self._read_locked(key) is None:
                return -2
            handle = self._expirations.get(key)
            if handle is None:
                return -1
            return max(0, handle.deadline_ms - self._now_ms())

    def clear(self) -> None:
        """Release every expiry handle and drop all keys."""
        with self._lock:
            self._expirations.clear()
            self._values.clear()
            self._expired_evictions = 0

    def stats(self) -> dict[str, int]:
        """Return lightweight store metrics without exposing values."""
        with self._lock:
            self._evict_expired_locked()
            return {
                "keys": len(self._values),
                "expiring": len(self._expirations),
                "expired_evictions": self._expired_evictions,
            }

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _set_expiration_locked(self, key: str, milliseconds: int) -> None:
        # Re-arming replaces the previous deadline, it never stacks.
        self._expirations.pop(key, None)
        self._expirations[key] = _ExpiryHandle(deadline_ms=self._now_ms() + int(milliseconds))

    def _read_locked(self, key: str) -> str | None:
        handle = self._expirations.get(key)
        if handle is not None and self._now_ms() >= handle.deadline_ms:
            self._evict_single(key)
            return None
        return self._values.get(key)

    def _read_hash_locked(self, key: str) -> dict[str, Any]:
        raw = self._read_locked(key)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug("kv.hash_decode_failed", extra={"kv_key": key})
            return {}
        return data if isinstance(data, dict) else {}

    def _evict_single(self, key: str) -> None:
        self._values.pop(key, None)
        self._expirations.pop(key, None)
        self._expired_evictions += 1
        logger.debug("kv.expired", extra={"kv_key": key})

    def _evict_expired_locked(self) -> None:
        now = self._now_ms()
        expired = [k for k, handle in self._expirations.items() if now >= handle.deadline_ms]
        for key in expired:
            self._evict_single(key)


def _stringify(value: Any) -> str:
    return value if isinstance(value, str) else str(value)
