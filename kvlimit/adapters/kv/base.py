"""Key-value store interface.

Admission algorithms depend on this abstraction (not a concrete store) so the
in-memory store can be swapped for a shared, networked one without changing
any algorithm. Implementations must make each operation atomic with respect
to itself: two concurrent ``incr`` calls on one key must never lose an update.
The algorithms take no locks of their own.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping


class AbstractKV(ABC):
    """Interface for key-value stores backing the rate limiters."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value stored at ``key`` or None when absent/expired."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: str, *, px: int | None = None) -> bool:
        """Store ``value`` at ``key``.

        Args:
            key: Key to write.
            value: String value to store.
            px: Optional time-to-live in milliseconds.

        Returns:
            True once the value is stored.
        """
        raise NotImplementedError

    @abstractmethod
    async def incrby(self, key: str, increment: int) -> int:
        """Add ``increment`` to the integer at ``key`` (absent counts as 0).

        Raises:
            NonNumericValueError: If the stored value is not an integer.
        """
        raise NotImplementedError

    async def incr(self, key: str) -> int:
        """Increment the integer at ``key`` by one."""
        return await self.incrby(key, 1)

    @abstractmethod
    async def pexpire(self, key: str, milliseconds: int) -> int:
        """Set a time-to-live on ``key``.

        Returns:
            1 if the key existed and the expiry was set, 0 otherwise.
        """
        raise NotImplementedError

    @abstractmethod
    async def hmget(self, key: str, *fields: str) -> list[str]:
        """Read hash fields; missing key or field yields ``""`` at its position."""
        raise NotImplementedError

    @abstractmethod
    async def hmset(self, key: str, mapping: Mapping[str, str]) -> bool:
        """Merge ``mapping`` into the hash at ``key``, creating it when absent."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete ``keys``; returns the number of keys deletion was attempted on."""
        raise NotImplementedError
