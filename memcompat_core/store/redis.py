"""Memcompat Redis Store - Redis Storage Backend.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional

import redis

from memcompat_core.cluster.node import NodeRef
from memcompat_core.errors import StoreError
from memcompat_core.protocol.codec import TaggedValue
from memcompat_core.store.backend import StoreBackend, StoreConfig

logger = logging.getLogger(__name__)

_VALUE_FIELD = "value"
_FLAGS_FIELD = "flags"


@dataclass
class RedisConfig(StoreConfig):
    """Redis-specific configuration.

    Attributes:
        host: Redis host
        port: Redis port
        db: Redis database number
        password: Redis password
        max_connections: Connection pool size
        prefix: Key prefix
    """

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    max_connections: int = 10
    prefix: str = "memcompat:"


class RedisStore(StoreBackend):
    """Redis storage backend.

    Redis has no per-value flags, so each key maps to a hash with
    ``value`` and ``flags`` fields. Expiry uses Redis native TTL.

    Example:
        store = RedisStore(RedisConfig(host="redis.local", port=6379))
        store.set("key", TaggedValue(b"data", 0))
        item = store.get("key")
    """

    def __init__(self, config: Optional[RedisConfig] = None):
        """Initialize Redis store.

        Args:
            config: Redis configuration
        """
        super().__init__(config)
        self.config: RedisConfig = config or RedisConfig()
        self._client: Optional[Any] = None
        self._pool: Optional[Any] = None
        self._lock = threading.Lock()

    @classmethod
    def for_node(cls, node: NodeRef, config: Optional[StoreConfig] = None) -> "RedisStore":
        """Create a store for a ring node.

        Args:
            node: Redis server to talk to
            config: Timeouts to apply

        Returns:
            RedisStore
        """
        base = config or StoreConfig()
        return cls(RedisConfig(
            name=node.address,
            connect_timeout=base.connect_timeout,
            timeout=base.timeout,
            host=node.connect_host,
            port=node.port,
        ))

    def _ensure_connected(self) -> Any:
        """Ensure Redis connection exists.

        Returns:
            Redis client
        """
        with self._lock:
            if self._client is not None:
                return self._client

            self._pool = redis.ConnectionPool(
                host=self.config.host,
                port=self.config.port,
                db=self.config.db,
                password=self.config.password,
                socket_timeout=self.config.timeout,
                socket_connect_timeout=self.config.connect_timeout,
                max_connections=self.config.max_connections,
                decode_responses=False,
            )
            self._client = redis.Redis(connection_pool=self._pool)
            logger.info(f"Created Redis client for {self.config.host}:{self.config.port}")

            return self._client

    def _make_key(self, key: str) -> str:
        """Make prefixed Redis key."""
        return f"{self.config.prefix}{key}"

    def _fail(self, op: str, error: Exception) -> StoreError:
        logger.error(f"Redis {op} error: {error}")
        self._record_error(str(error))
        return StoreError(f"Redis {op} failed: {error}")

    def get(self, key: str) -> Optional[TaggedValue]:
        """Get value by key."""
        try:
            client = self._ensure_connected()
            value, flags = client.hmget(self._make_key(key), _VALUE_FIELD, _FLAGS_FIELD)
        except redis.RedisError as e:
            raise self._fail("get", e) from e

        self._count("reads")
        if value is None:
            return None
        try:
            return TaggedValue(bytes(value), int(flags or 0))
        except ValueError as e:
            raise self._fail("get", e) from e

    def set(self, key: str, item: TaggedValue, expire: int = 0) -> bool:
        """Store value."""
        redis_key = self._make_key(key)
        try:
            client = self._ensure_connected()
            pipe = client.pipeline()
            pipe.delete(redis_key)
            pipe.hset(redis_key, mapping={
                _VALUE_FIELD: item.value,
                _FLAGS_FIELD: int(item.flags),
            })
            if expire > 0:
                pipe.expire(redis_key, expire)
            pipe.execute()
        except redis.RedisError as e:
            raise self._fail("set", e) from e

        self._count("writes")
        return True

    def delete(self, key: str) -> bool:
        """Delete value."""
        try:
            client = self._ensure_connected()
            result = client.delete(self._make_key(key))
        except redis.RedisError as e:
            raise self._fail("delete", e) from e

        self._count("deletes")
        return result > 0

    def close(self) -> None:
        """Close Redis connection."""
        with self._lock:
            if self._pool:
                self._pool.disconnect()
                self._pool = None
                self._client = None

    def __repr__(self) -> str:
        return f"RedisStore(host={self.config.host}, port={self.config.port})"


__all__ = ["RedisStore", "RedisConfig"]
