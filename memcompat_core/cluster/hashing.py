"""Memcompat Hashing - 32-bit Key Hash Functions.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import hashlib
from typing import Callable, Dict, Union

HashFunction = Callable[[bytes], int]

_MASK32 = 0xFFFFFFFF


def one_at_a_time(data: bytes) -> int:
    """Bob Jenkins' one-at-a-time hash.

    libmemcached uses this for non-weighted ketama.

    Args:
        data: Bytes to hash

    Returns:
        Unsigned 32-bit hash
    """
    h = 0
    for byte in data:
        h = (h + byte) & _MASK32
        h = (h + (h << 10)) & _MASK32
        h ^= h >> 6
    h = (h + (h << 3)) & _MASK32
    h ^= h >> 11
    h = (h + (h << 15)) & _MASK32
    return h


def fnv1a_32(data: bytes) -> int:
    """FNV-1a, 32-bit variant."""
    h = 0x811C9DC5
    for byte in data:
        h ^= byte
        h = (h * 0x01000193) & _MASK32
    return h


def md5(data: bytes) -> int:
    """Ketama MD5 point: first four digest bytes, little-endian."""
    return int.from_bytes(hashlib.md5(data).digest()[:4], "little")


HASH_FUNCTIONS: Dict[str, HashFunction] = {
    "one_at_a_time": one_at_a_time,
    "jenkins": one_at_a_time,
    "fnv1a_32": fnv1a_32,
    "md5": md5,
}

DEFAULT_HASH = "one_at_a_time"


def get_hash_function(hash_function: Union[str, HashFunction, None] = None) -> HashFunction:
    """Resolve a hash function by name or pass a callable through.

    Args:
        hash_function: Registry name, callable, or None for the default

    Returns:
        Hash callable

    Raises:
        KeyError: If the name is not registered
    """
    if hash_function is None:
        return HASH_FUNCTIONS[DEFAULT_HASH]
    if callable(hash_function):
        return hash_function
    if hash_function not in HASH_FUNCTIONS:
        raise KeyError(f"Unknown hash function: {hash_function}")
    return HASH_FUNCTIONS[hash_function]


__all__ = [
    "HashFunction",
    "HASH_FUNCTIONS",
    "DEFAULT_HASH",
    "one_at_a_time",
    "fnv1a_32",
    "md5",
    "get_hash_function",
]
