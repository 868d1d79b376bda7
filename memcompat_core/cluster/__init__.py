"""Cluster module - Key distribution across cache servers."""

from memcompat_core.cluster.node import NodeRef
from memcompat_core.cluster.ring import ConsistentHashRing, RingPoint
from memcompat_core.cluster.selector import NodeSelector
from memcompat_core.cluster.hashing import get_hash_function, one_at_a_time

__all__ = [
    "NodeRef",
    "ConsistentHashRing",
    "RingPoint",
    "NodeSelector",
    "get_hash_function",
    "one_at_a_time",
]
