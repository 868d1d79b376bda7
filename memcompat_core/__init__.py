"""Memcompat - pylibmc-Compatible Cache Client.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

A memcached client whose keys and values interoperate with
pylibmc/libmemcached deployments:
- Values tagged with pylibmc's type flags (str, unicode, int, bool)
- Restricted pickle decoder for scalar pickles, protocols 0-2
- Byte-exact unicode pickle emitter
- Non-weighted ketama ring with Jenkins one-at-a-time hashing
- Swappable ring snapshots for topology changes
- Pluggable server backends (memcached, Redis, memory)

Architecture:
    ┌─────────────────────────────────────────────────────────────────┐
    │                        Memcompat Client                         │
    ├─────────────────────────────────────────────────────────────────┤
    │  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐             │
    │  │   Codec     │  │  Pickler /  │  │  TypeFlag   │  PROTOCOL   │
    │  │ encode/dec  │  │  Unpickler  │  │  bitmask    │  LAYER      │
    │  └──────┬──────┘  └──────┬──────┘  └──────┬──────┘             │
    │         │                │                │                     │
    │  ┌──────┴────────────────┴────────────────┴──────┐             │
    │  │              Cluster Layer                     │             │
    │  │   ┌────────┐  ┌────────┐  ┌──────────┐       │   CLUSTER   │
    │  │   │  Node  │  │  Ring  │  │ Selector │       │   LAYER     │
    │  │   └────────┘  └────────┘  └──────────┘       │             │
    │  └──────────────────────┬────────────────────────┘             │
    │                         │                                       │
    │  ┌──────────────────────┴────────────────────────┐             │
    │  │              Store Backends                    │             │
    │  │   ┌──────────┐  ┌────────┐  ┌────────┐       │   STORAGE   │
    │  │   │Memcached │  │ Redis  │  │ Memory │       │   LAYER     │
    │  │   └──────────┘  └────────┘  └────────┘       │             │
    │  └──────────────────────────────────────────────┘             │
    └─────────────────────────────────────────────────────────────────┘

Example Usage:
    from memcompat_core import CacheClient

    client = CacheClient(["cache1:11211", "cache2:11211"])

    # Readable by pylibmc as str, unicode, int and bool
    client.set_string("name", "alice")
    client.set_unicode("city", "Zürich")
    client.set_int("visits", 42)
    client.set_bool("active", True)

    visits, ok = client.get_int("visits")

    # Topology change swaps in a freshly built ring
    client.set_servers(["cache1:11211", "cache2:11211", "cache3:11211"])
"""

__version__ = "1.0.0"
__author__ = "BlackRoad OS"

from memcompat_core.errors import (
    MemcompatError,
    DecodeError,
    UnsupportedOpcode,
    UnsupportedProtocol,
    TruncatedStream,
    MalformedStream,
    StackUnderflow,
    InvalidType,
    ParseError,
    EncodeError,
    RingError,
    EmptyRingError,
    MalformedKeyError,
    StoreError,
)
from memcompat_core.config import ClientConfig
from memcompat_core.protocol.flags import TypeFlag
from memcompat_core.protocol.codec import TaggedValue, TaggedValueCodec
from memcompat_core.protocol.pickler import encode_unicode
from memcompat_core.protocol.unpickler import PickleDecoder
from memcompat_core.cluster.node import NodeRef
from memcompat_core.cluster.ring import ConsistentHashRing, RingPoint
from memcompat_core.cluster.selector import NodeSelector
from memcompat_core.store.backend import StoreBackend, StoreConfig, StoreStats
from memcompat_core.store.memory import MemoryStore
from memcompat_core.store.memcached import MemcachedStore
from memcompat_core.store.redis import RedisStore
from memcompat_core.client.client import CacheClient, ClientStats

__all__ = [
    # Client
    "CacheClient",
    "ClientConfig",
    "ClientStats",
    # Protocol
    "TypeFlag",
    "TaggedValue",
    "TaggedValueCodec",
    "PickleDecoder",
    "encode_unicode",
    # Cluster
    "NodeRef",
    "ConsistentHashRing",
    "RingPoint",
    "NodeSelector",
    # Storage
    "StoreBackend",
    "StoreConfig",
    "StoreStats",
    "MemoryStore",
    "MemcachedStore",
    "RedisStore",
    # Errors
    "MemcompatError",
    "DecodeError",
    "UnsupportedOpcode",
    "UnsupportedProtocol",
    "TruncatedStream",
    "MalformedStream",
    "StackUnderflow",
    "InvalidType",
    "ParseError",
    "EncodeError",
    "RingError",
    "EmptyRingError",
    "MalformedKeyError",
    "StoreError",
]
