"""Memcompat Client - pylibmc-Compatible Cache Client.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, TypeVar, Union

from memcompat_core.cluster.node import NodeRef
from memcompat_core.cluster.ring import ConsistentHashRing
from memcompat_core.cluster.selector import NodeSelector
from memcompat_core.config import ClientConfig
from memcompat_core.errors import DecodeError, MalformedKeyError, StoreError
from memcompat_core.protocol.codec import TaggedValue, TaggedValueCodec
from memcompat_core.store.backend import StoreBackend, StoreConfig
from memcompat_core.store.memcached import MemcachedStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

StoreFactory = Callable[[NodeRef], StoreBackend]

MAX_KEY_LENGTH = 250


@dataclass
class ClientStats:
    """Client statistics.

    Attributes:
        hits: Reads that found a value
        misses: Reads that found nothing
        sets: Successful writes
        deletes: Successful deletes
        decode_errors: Values that could not be decoded as requested
        store_errors: Backend failures
    """

    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    decode_errors: int = 0
    store_errors: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate hit rate."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def reset(self) -> None:
        """Reset statistics."""
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.deletes = 0
        self.decode_errors = 0
        self.store_errors = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "deletes": self.deletes,
            "decode_errors": self.decode_errors,
            "store_errors": self.store_errors,
            "hit_rate": self.hit_rate,
        }


def check_key(key: str) -> None:
    """Validate a memcached key.

    Args:
        key: Cache key

    Raises:
        MalformedKeyError: If empty, over 250 bytes, or containing
            whitespace or control characters
    """
    if not isinstance(key, str):
        raise MalformedKeyError(f"key must be str, got {type(key).__name__}")
    raw = key.encode("utf-8")
    if not raw or len(raw) > MAX_KEY_LENGTH:
        raise MalformedKeyError(f"key length {len(raw)} outside 1..{MAX_KEY_LENGTH}")
    for byte in raw:
        if byte <= 0x20 or byte == 0x7F:
            raise MalformedKeyError(f"key {key!r} contains whitespace or control bytes")


class CacheClient:
    """Cache client interoperable with pylibmc/libmemcached.

    Keys go to servers through a non-weighted ketama ring; values are
    stored with pylibmc's flag conventions so Python clients can read
    them and vice versa.

    Reads come in two flavours:
    - ``get_string``/``get_int``/``get_bool`` return ``(value, found)``
      and turn every miss, store failure or decode error into
      ``(zero, False)``
    - ``get_item``/``get_value`` raise the precise error

    Example:
        client = CacheClient(["cache1:11211", "cache2:11211"])

        client.set_unicode("greeting", "héllo")
        client.set_int("visits", 42)

        visits, ok = client.get_int("visits")
    """

    def __init__(
        self,
        config: Union[ClientConfig, Iterable[str], None] = None,
        store_factory: Optional[StoreFactory] = None,
        codec: Optional[TaggedValueCodec] = None,
    ):
        """Initialize client.

        Args:
            config: ClientConfig or a list of ``host:port`` addresses
            store_factory: Builds the backend for a node, default memcached
            codec: Value codec

        Raises:
            EmptyRingError: If no servers are configured
        """
        if config is None:
            config = ClientConfig()
        elif not isinstance(config, ClientConfig):
            config = ClientConfig(servers=list(config))

        self.config = config
        self.codec = codec or TaggedValueCodec()
        self._store_factory = store_factory or self._memcached_store
        self._selector = NodeSelector(
            config.servers,
            hash_function=config.hash_function,
            points_per_node=config.points_per_node,
        )
        self._stores: Dict[str, StoreBackend] = {}
        self._lock = threading.RLock()
        self._stats = ClientStats()

    def _memcached_store(self, node: NodeRef) -> StoreBackend:
        return MemcachedStore.for_node(node, StoreConfig(
            name=node.address,
            connect_timeout=self.config.connect_timeout,
            timeout=self.config.timeout,
        ))

    # Topology

    @property
    def ring(self) -> ConsistentHashRing:
        """Current ring snapshot."""
        return self._selector.ring

    def set_servers(self, servers: Iterable[str]) -> None:
        """Replace the server list.

        Lookups in flight finish against the old ring. Backends for
        servers that left are closed.

        Args:
            servers: New ``host:port`` addresses
        """
        ring = self._selector.set_servers(servers)
        with self._lock:
            for address in list(self._stores):
                if address not in ring:
                    self._stores.pop(address).close()
                    logger.info(f"Closed backend for departed server {address}")

    def pick_node(self, key: str) -> NodeRef:
        """Get the server that owns a key.

        Raises:
            MalformedKeyError: If the key is not valid for memcached
        """
        check_key(key)
        return self._selector.pick_node(key)

    def _store_for(self, key: str) -> StoreBackend:
        node = self.pick_node(key)
        store = self._stores.get(node.address)
        if store is None:
            with self._lock:
                store = self._stores.get(node.address)
                if store is None:
                    store = self._store_factory(node)
                    self._stores[node.address] = store
        logger.debug(f"Routing key {key!r} to {node.address}")
        return store

    # Writes

    def set_item(self, key: str, item: TaggedValue, expire: Optional[int] = None) -> bool:
        """Store an already-encoded value.

        Args:
            key: Cache key
            item: Bytes and flags
            expire: Seconds to live, default from config

        Returns:
            True if stored, False on a backend failure

        Raises:
            MalformedKeyError: If the key is not valid for memcached
        """
        store = self._store_for(key)
        if expire is None:
            expire = self.config.default_expire

        try:
            stored = store.set(key, item, expire)
        except StoreError as e:
            logger.warning(f"Set {key!r} failed: {e}")
            with self._lock:
                self._stats.store_errors += 1
            return False

        if stored:
            with self._lock:
                self._stats.sets += 1
        return stored

    def set(self, key: str, value: Any, expire: Optional[int] = None) -> bool:
        """Store a scalar, picking the encoding from its type.

        Raises:
            EncodeError: If the value has no wire representation
        """
        return self.set_item(key, self.codec.encode(value), expire)

    def set_string(self, key: str, value: Union[str, bytes], expire: Optional[int] = None) -> bool:
        """Store text verbatim (flags NONE)."""
        return self.set_item(key, self.codec.string_item(value), expire)

    def set_unicode(self, key: str, value: str, expire: Optional[int] = None) -> bool:
        """Store text as a pickled unicode object (flags PICKLE)."""
        return self.set_item(key, self.codec.unicode_item(value), expire)

    def set_int(self, key: str, value: int, expire: Optional[int] = None) -> bool:
        """Store a 64-bit integer (flags INTEGER)."""
        return self.set_item(key, self.codec.int64_item(value), expire)

    def set_bool(self, key: str, value: bool, expire: Optional[int] = None) -> bool:
        """Store a boolean (flags BOOL)."""
        return self.set_item(key, self.codec.bool_item(value), expire)

    def delete(self, key: str) -> bool:
        """Delete a key.

        Returns:
            True if deleted, False if absent or on a backend failure
        """
        store = self._store_for(key)
        try:
            deleted = store.delete(key)
        except StoreError as e:
            logger.warning(f"Delete {key!r} failed: {e}")
            with self._lock:
                self._stats.store_errors += 1
            return False

        if deleted:
            with self._lock:
                self._stats.deletes += 1
        return deleted

    # Reads

    def get_item(self, key: str) -> Optional[TaggedValue]:
        """Get the raw stored value.

        Returns:
            TaggedValue or None if absent

        Raises:
            MalformedKeyError: If the key is not valid for memcached
            StoreError: If the backend failed
        """
        item = self._store_for(key).get(key)
        with self._lock:
            if item is None:
                self._stats.misses += 1
            else:
                self._stats.hits += 1
        return item

    def get_value(self, key: str, default: Any = None) -> Any:
        """Get and decode a value.

        Returns:
            Decoded scalar, or default if absent

        Raises:
            DecodeError: If the stored value cannot be decoded
            StoreError: If the backend failed
        """
        item = self.get_item(key)
        if item is None:
            return default
        return self.codec.decode(item.value, item.flags)

    def get(self, key: str, default: Any = None) -> Any:
        """Get and decode a value, returning default on any failure."""
        value, found = self._soft_get(key, self.codec.decode, default)
        return value if found else default

    def get_string(self, key: str) -> Tuple[str, bool]:
        """Get text.

        Returns:
            (value, True), or ("", False) on a miss or any error
        """
        return self._soft_get(key, self.codec.decode_string, "")

    def get_int(self, key: str) -> Tuple[int, bool]:
        """Get a 64-bit integer.

        Returns:
            (value, True), or (0, False) on a miss or any error
        """
        return self._soft_get(key, self.codec.decode_int, 0)

    def get_bool(self, key: str) -> Tuple[bool, bool]:
        """Get a boolean; legacy integer ``0``/``1`` values count.

        Returns:
            (value, True), or (False, False) on a miss or any error
        """
        return self._soft_get(key, self.codec.decode_bool, False)

    def _soft_get(
        self,
        key: str,
        decoder: Callable[[bytes, int], T],
        zero: T,
    ) -> Tuple[T, bool]:
        try:
            item = self.get_item(key)
        except MalformedKeyError as e:
            logger.debug(f"Rejected key: {e}")
            return zero, False
        except StoreError as e:
            logger.warning(f"Get {key!r} failed: {e}")
            with self._lock:
                self._stats.store_errors += 1
            return zero, False

        if item is None:
            return zero, False

        try:
            return decoder(item.value, item.flags), True
        except DecodeError as e:
            logger.warning(f"Cannot decode {key!r} (flags {item.flags:#x}): {e}")
            with self._lock:
                self._stats.decode_errors += 1
            return zero, False

    # Lifecycle

    def get_stats(self) -> ClientStats:
        """Get client statistics."""
        return self._stats

    def reset_stats(self) -> None:
        """Reset statistics."""
        with self._lock:
            self._stats.reset()

    def close(self) -> None:
        """Close all backends."""
        with self._lock:
            for store in self._stores.values():
                store.close()
            self._stores.clear()

    def __enter__(self) -> "CacheClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"CacheClient({self._selector.ring!r})"


__all__ = ["CacheClient", "ClientStats", "StoreFactory", "check_key", "MAX_KEY_LENGTH"]
