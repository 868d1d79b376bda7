"""Store module - Server backends holding tagged values."""

from memcompat_core.store.backend import (
    StoreBackend,
    StoreConfig,
    StoreStats,
)
from memcompat_core.store.memory import MemoryStore
from memcompat_core.store.memcached import MemcachedStore, MemcachedConfig
from memcompat_core.store.redis import RedisStore, RedisConfig

__all__ = [
    "StoreBackend",
    "StoreConfig",
    "StoreStats",
    "MemoryStore",
    "MemcachedStore",
    "MemcachedConfig",
    "RedisStore",
    "RedisConfig",
]
