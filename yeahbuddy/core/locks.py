"""
Per-identity locks.

Serializes read-check-write sequences on one review or one token while letting
work on other identities proceed. Locks are held weakly so the table does not
grow with every identity ever touched.
"""

from __future__ import annotations

import asyncio
from typing import Hashable
from weakref import WeakValueDictionary


class KeyedLocks:
    """
    One ``asyncio.Lock`` per key.

    Usage:
        async with locks.get(review_key):
            ...
    """

    def __init__(self):
        self._locks: WeakValueDictionary[Hashable, asyncio.Lock] = WeakValueDictionary()

    def get(self, key: Hashable) -> asyncio.Lock:
        """Get or create the lock for a key."""
        # No await between lookup and insert, so this is atomic on the loop.
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)
