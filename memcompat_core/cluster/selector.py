"""Memcompat Selector - Swappable Ring Snapshot.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Union

from memcompat_core.cluster.hashing import HashFunction
from memcompat_core.cluster.node import NodeRef
from memcompat_core.cluster.ring import DEFAULT_POINTS_PER_NODE, ConsistentHashRing, NodeLike

logger = logging.getLogger(__name__)


class NodeSelector:
    """Picks the server for a key from the current ring snapshot.

    Lookups read the ring reference once and use that snapshot for the
    whole call. ``set_servers`` builds the replacement ring completely
    before swapping the reference, so no lookup ever sees a partial ring.

    Example:
        selector = NodeSelector(["cache1:11211", "cache2:11211"])
        node = selector.pick_node("user:1")

        selector.set_servers(["cache1:11211", "cache2:11211", "cache3:11211"])
    """

    def __init__(
        self,
        servers: Iterable[NodeLike],
        hash_function: Union[str, HashFunction, None] = None,
        points_per_node: int = DEFAULT_POINTS_PER_NODE,
    ):
        """Initialize selector.

        Args:
            servers: ``host:port`` strings or NodeRefs
            hash_function: Hash name or callable
            points_per_node: Continuum points per node

        Raises:
            EmptyRingError: If no servers are given
        """
        self._hash_function = hash_function
        self._points_per_node = points_per_node
        self._lock = threading.Lock()
        self._ring = ConsistentHashRing(servers, hash_function, points_per_node)

    @property
    def ring(self) -> ConsistentHashRing:
        """Current ring snapshot."""
        return self._ring

    def set_servers(self, servers: Iterable[NodeLike]) -> ConsistentHashRing:
        """Replace the server list.

        Args:
            servers: New ``host:port`` strings or NodeRefs

        Returns:
            The newly installed ring

        Raises:
            EmptyRingError: If no servers are given; the old ring stays live
        """
        ring = ConsistentHashRing(servers, self._hash_function, self._points_per_node)
        with self._lock:
            old, self._ring = self._ring, ring

        logger.info(
            f"Server list changed from {len(old)} to {len(ring)} nodes"
        )
        return ring

    def pick_node(self, key: Union[str, bytes]) -> NodeRef:
        """Get node for key."""
        return self._ring.pick_node(key)

    def __repr__(self) -> str:
        return f"NodeSelector({self._ring!r})"


__all__ = ["NodeSelector"]
