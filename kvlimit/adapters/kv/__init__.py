"""Key-value store adapters.

Algorithms program against ``AbstractKV``; ``LocalKV`` is the in-memory
reference implementation. A shared, networked store can be plugged in by
implementing the same interface.
"""

from kvlimit.adapters.kv.base import AbstractKV
from kvlimit.adapters.kv.local import LocalKV

__all__ = ["AbstractKV", "LocalKV"]
