"""Client module - pylibmc-compatible cache client."""

from memcompat_core.client.client import (
    CacheClient,
    ClientStats,
    check_key,
)

__all__ = [
    "CacheClient",
    "ClientStats",
    "check_key",
]
