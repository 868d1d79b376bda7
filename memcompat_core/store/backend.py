"""Memcompat Store Backend - Abstract Server Interface.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from memcompat_core.protocol.codec import TaggedValue

logger = logging.getLogger(__name__)


@dataclass
class StoreConfig:
    """Store backend configuration.

    Attributes:
        name: Backend name
        connect_timeout: Seconds to wait for a connection
        timeout: Seconds to wait for a response
    """

    name: str = "store"
    connect_timeout: Optional[float] = 1.0
    timeout: Optional[float] = 1.0


@dataclass
class StoreStats:
    """Store backend statistics.

    Attributes:
        reads: Number of read operations
        writes: Number of write operations
        deletes: Number of delete operations
        errors: Number of errors
    """

    reads: int = 0
    writes: int = 0
    deletes: int = 0
    errors: int = 0
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None

    def record_error(self, error: str) -> None:
        """Record an error."""
        self.errors += 1
        self.last_error = error
        self.last_error_at = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "reads": self.reads,
            "writes": self.writes,
            "deletes": self.deletes,
            "errors": self.errors,
            "last_error": self.last_error,
        }


class StoreBackend(ABC):
    """Abstract key-value server holding tagged values.

    One backend talks to one cache server. Implementations:
    - MemoryStore: In-process dictionary
    - MemcachedStore: memcached via pymemcache
    - RedisStore: Redis hashes holding value and flags

    Transport failures raise StoreError; a missing key is not an error.
    """

    def __init__(self, config: Optional[StoreConfig] = None):
        """Initialize backend.

        Args:
            config: Store configuration
        """
        self.config = config or StoreConfig()
        self._stats = StoreStats()
        self._stats_lock = threading.Lock()

    @abstractmethod
    def get(self, key: str) -> Optional[TaggedValue]:
        """Get value by key.

        Args:
            key: Cache key

        Returns:
            TaggedValue or None if absent

        Raises:
            StoreError: If the server could not be reached
        """
        pass

    @abstractmethod
    def set(self, key: str, item: TaggedValue, expire: int = 0) -> bool:
        """Store value.

        Args:
            key: Cache key
            item: Bytes and flags to store
            expire: Seconds to live, 0 for no expiry

        Returns:
            True if stored

        Raises:
            StoreError: If the server could not be reached
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete value.

        Args:
            key: Cache key

        Returns:
            True if deleted
        """
        pass

    def _count(self, field: str) -> None:
        with self._stats_lock:
            setattr(self._stats, field, getattr(self._stats, field) + 1)

    def _record_error(self, error: str) -> None:
        with self._stats_lock:
            self._stats.record_error(error)

    def get_many(self, keys: List[str]) -> Dict[str, TaggedValue]:
        """Get multiple values.

        Args:
            keys: List of keys

        Returns:
            Dict of key -> value for keys that were found
        """
        result = {}
        for key in keys:
            item = self.get(key)
            if item is not None:
                result[key] = item
        return result

    def close(self) -> None:
        """Release connections."""

    def get_stats(self) -> StoreStats:
        """Get store statistics.

        Returns:
            StoreStats instance
        """
        return self._stats

    def reset_stats(self) -> None:
        """Reset statistics."""
        with self._stats_lock:
            self._stats = StoreStats()


__all__ = ["StoreBackend", "StoreConfig", "StoreStats"]
