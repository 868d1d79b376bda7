"""Memcompat Memcached Store - memcached Storage Backend.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from pymemcache.client.base import PooledClient
from pymemcache.exceptions import MemcacheError

from memcompat_core.cluster.node import NodeRef
from memcompat_core.errors import StoreError
from memcompat_core.protocol.codec import TaggedValue
from memcompat_core.store.backend import StoreBackend, StoreConfig

logger = logging.getLogger(__name__)


@dataclass
class MemcachedConfig(StoreConfig):
    """memcached-specific configuration.

    Attributes:
        host: Server hostname
        port: Server port
        no_delay: Set TCP_NODELAY
        max_pool_size: Most sockets held open to the server
    """

    host: str = "localhost"
    port: int = 11211
    no_delay: bool = True
    max_pool_size: int = 10


class TaggedValueSerde:
    """pymemcache serde that passes bytes and flags through untouched.

    Encoding and decoding belong to TaggedValueCodec; the wire layer
    only moves ``(bytes, flags)`` pairs.
    """

    def serialize(self, key: Any, value: TaggedValue) -> Tuple[bytes, int]:
        return value.value, int(value.flags)

    def deserialize(self, key: Any, value: bytes, flags: int) -> TaggedValue:
        return TaggedValue(value, flags)


class MemcachedStore(StoreBackend):
    """memcached storage backend.

    Talks to one server through a pymemcache connection pool, opened
    lazily on first use. Each request checks a socket out of the pool,
    so threads sharing the store never interleave on one connection.

    Example:
        store = MemcachedStore(MemcachedConfig(host="cache1", port=11211))
        store.set("key", TaggedValue(b"data", 0))
        item = store.get("key")
    """

    def __init__(self, config: Optional[MemcachedConfig] = None):
        """Initialize memcached store.

        Args:
            config: memcached configuration
        """
        super().__init__(config)
        self.config: MemcachedConfig = config or MemcachedConfig()
        self._client: Optional[PooledClient] = None
        self._lock = threading.Lock()

    @classmethod
    def for_node(cls, node: NodeRef, config: Optional[StoreConfig] = None) -> "MemcachedStore":
        """Create a store for a ring node.

        Args:
            node: Server to talk to
            config: Timeouts to apply

        Returns:
            MemcachedStore
        """
        base = config or StoreConfig()
        return cls(MemcachedConfig(
            name=node.address,
            connect_timeout=base.connect_timeout,
            timeout=base.timeout,
            host=node.connect_host,
            port=node.port,
        ))

    def _ensure_connected(self) -> PooledClient:
        """Ensure the pooled client exists.

        Returns:
            pymemcache pooled client
        """
        with self._lock:
            if self._client is None:
                self._client = PooledClient(
                    (self.config.host, self.config.port),
                    serde=TaggedValueSerde(),
                    connect_timeout=self.config.connect_timeout,
                    timeout=self.config.timeout,
                    no_delay=self.config.no_delay,
                    max_pool_size=self.config.max_pool_size,
                    allow_unicode_keys=True,
                )
                logger.info(f"Created memcached pool for {self.config.host}:{self.config.port}")
            return self._client

    def _fail(self, op: str, error: Exception) -> StoreError:
        logger.error(f"memcached {op} error on {self.config.name}: {error}")
        self._record_error(str(error))
        return StoreError(f"memcached {op} failed on {self.config.name}: {error}")

    def get(self, key: str) -> Optional[TaggedValue]:
        """Get value by key."""
        try:
            item = self._ensure_connected().get(key)
        except (MemcacheError, OSError) as e:
            raise self._fail("get", e) from e

        self._count("reads")
        return item

    def set(self, key: str, item: TaggedValue, expire: int = 0) -> bool:
        """Store value."""
        try:
            stored = self._ensure_connected().set(key, item, expire=expire, noreply=False)
        except (MemcacheError, OSError) as e:
            raise self._fail("set", e) from e

        self._count("writes")
        return bool(stored)

    def delete(self, key: str) -> bool:
        """Delete value."""
        try:
            deleted = self._ensure_connected().delete(key, noreply=False)
        except (MemcacheError, OSError) as e:
            raise self._fail("delete", e) from e

        self._count("deletes")
        return bool(deleted)

    def close(self) -> None:
        """Close every pooled connection."""
        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None

    def __repr__(self) -> str:
        return f"MemcachedStore(host={self.config.host}, port={self.config.port})"


__all__ = ["MemcachedStore", "MemcachedConfig", "TaggedValueSerde"]
