"""Memcompat Memory Store - In-Memory Storage Backend.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Dict, List, Optional, Tuple

from memcompat_core.protocol.codec import TaggedValue
from memcompat_core.store.backend import StoreBackend, StoreConfig

logger = logging.getLogger(__name__)


class MemoryStore(StoreBackend):
    """In-memory storage backend.

    Stands in for a cache server in tests and single-process use.
    Stores bytes and flags exactly as given.

    Example:
        store = MemoryStore()
        store.set("key", TaggedValue(b"data", 0))
        item = store.get("key")
    """

    def __init__(self, config: Optional[StoreConfig] = None):
        """Initialize memory store.

        Args:
            config: Store configuration
        """
        super().__init__(config)
        # key -> (item, expires_at or None)
        self._data: Dict[str, Tuple[TaggedValue, Optional[float]]] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[TaggedValue]:
        """Get value by key, dropping it if expired."""
        with self._lock:
            self._stats.reads += 1
            entry = self._data.get(key)
            if entry is None:
                return None

            item, expires_at = entry
            if expires_at is not None and expires_at <= time.monotonic():
                del self._data[key]
                return None
            return item

    def set(self, key: str, item: TaggedValue, expire: int = 0) -> bool:
        """Store value."""
        expires_at = time.monotonic() + expire if expire > 0 else None
        with self._lock:
            self._data[key] = (item, expires_at)
            self._stats.writes += 1
            return True

    def delete(self, key: str) -> bool:
        """Delete value."""
        with self._lock:
            if key in self._data:
                del self._data[key]
                self._stats.deletes += 1
                return True
            return False

    def keys(self) -> List[str]:
        """Get all stored keys."""
        with self._lock:
            return list(self._data.keys())

    def clear(self) -> int:
        """Clear all entries.

        Returns:
            Number cleared
        """
        with self._lock:
            count = len(self._data)
            self._data.clear()
            return count

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"MemoryStore(entries={len(self._data)})"


__all__ = ["MemoryStore"]
