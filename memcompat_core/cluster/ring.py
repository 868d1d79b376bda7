"""Memcompat Hash Ring - Ketama Consistent Hashing.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import bisect
import logging
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Set, Tuple, Union

from memcompat_core.cluster.hashing import HashFunction, get_hash_function
from memcompat_core.cluster.node import NodeRef
from memcompat_core.errors import EmptyRingError

logger = logging.getLogger(__name__)

# Points per server in libketama's continuum (40 digests x 4 points)
DEFAULT_POINTS_PER_NODE = 160

NodeLike = Union[str, NodeRef]


class RingPoint(NamedTuple):
    """A point on the continuum owned by a node."""

    hash: int
    node: NodeRef


class ConsistentHashRing:
    """Immutable non-weighted ketama continuum.

    Maps keys to nodes using consistent hashing.
    Each node contributes the same number of points, point ``i`` of a node
    being the hash of ``"<host:port>-<i>"``.

    Properties:
    - Same nodes and hash function always give the same continuum,
      whatever order the nodes were listed in
    - Removing a node only remaps the keys that node owned
    - Never mutated; topology changes build a new ring

    Example:
        ring = ConsistentHashRing(["cache1:11211", "cache2:11211"])

        node = ring.pick_node("my-key")
        smaller = ring.without_node("cache2:11211")
    """

    def __init__(
        self,
        nodes: Iterable[NodeLike],
        hash_function: Union[str, HashFunction, None] = None,
        points_per_node: int = DEFAULT_POINTS_PER_NODE,
    ):
        """Build the ring.

        Args:
            nodes: ``host:port`` strings or NodeRefs
            hash_function: Hash name or callable, default one-at-a-time
            points_per_node: Continuum points per node

        Raises:
            EmptyRingError: If no nodes are given
            ValueError: If points_per_node is not positive
        """
        if points_per_node < 1:
            raise ValueError("points_per_node must be positive")

        self._hash_function = get_hash_function(hash_function)
        self._points_per_node = points_per_node

        unique: Dict[str, NodeRef] = {}
        for item in nodes:
            node = NodeRef.parse(item)
            if node.address in unique:
                logger.warning(f"Ignoring duplicate node {node.address}")
                continue
            unique[node.address] = node

        if not unique:
            raise EmptyRingError("cannot build a hash ring without nodes")

        self._nodes: Tuple[NodeRef, ...] = tuple(unique.values())

        # Ties on hash fall back to address then index, never to input order
        entries: List[Tuple[int, str, int, NodeRef]] = []
        for node in self._nodes:
            for i in range(points_per_node):
                point = self._hash(f"{node.address}-{i}")
                entries.append((point, node.address, i, node))
        entries.sort(key=lambda e: (e[0], e[1], e[2]))

        self._points: Tuple[RingPoint, ...] = tuple(
            RingPoint(e[0], e[3]) for e in entries
        )
        self._hashes: Tuple[int, ...] = tuple(p.hash for p in self._points)

        logger.info(
            f"Built hash ring with {len(self._nodes)} nodes, "
            f"{len(self._points)} points"
        )

    def _hash(self, key: Union[str, bytes]) -> int:
        """Hash a key onto the continuum.

        Args:
            key: Key text or bytes

        Returns:
            Unsigned 32-bit position
        """
        if isinstance(key, str):
            key = key.encode("utf-8")
        return self._hash_function(key) & 0xFFFFFFFF

    def pick_node(self, key: Union[str, bytes]) -> NodeRef:
        """Get node for key.

        Args:
            key: Cache key

        Returns:
            Owner of the first point at or after the key's hash
        """
        return self._points[self._index_for(key)].node

    def _index_for(self, key: Union[str, bytes]) -> int:
        idx = bisect.bisect_left(self._hashes, self._hash(key))

        # Wrap around to beginning
        if idx >= len(self._hashes):
            idx = 0
        return idx

    def get_nodes(self, key: Union[str, bytes], count: int = 2) -> List[NodeRef]:
        """Get distinct nodes walking clockwise from the key.

        The first entry is always ``pick_node(key)``; later entries are
        failover candidates.

        Args:
            key: Cache key
            count: Number of nodes

        Returns:
            Up to ``count`` distinct nodes
        """
        if count < 1:
            return []

        start = self._index_for(key)
        nodes: List[NodeRef] = []
        seen: Set[str] = set()

        for i in range(len(self._points)):
            node = self._points[(start + i) % len(self._points)].node
            if node.address not in seen:
                seen.add(node.address)
                nodes.append(node)
                if len(nodes) >= count:
                    break

        return nodes

    def get_key_distribution(self, keys: Iterable[Union[str, bytes]]) -> Dict[str, int]:
        """Get distribution of keys across nodes.

        Args:
            keys: Keys to check

        Returns:
            Dict of node address -> key count
        """
        distribution: Dict[str, int] = {n.address: 0 for n in self._nodes}
        for key in keys:
            distribution[self.pick_node(key).address] += 1
        return distribution

    def with_node(self, node: NodeLike) -> "ConsistentHashRing":
        """Return a new ring with a node added."""
        return ConsistentHashRing(
            list(self._nodes) + [NodeRef.parse(node)],
            self._hash_function,
            self._points_per_node,
        )

    def without_node(self, node: NodeLike) -> "ConsistentHashRing":
        """Return a new ring with a node removed.

        Raises:
            KeyError: If the node is not on the ring
            EmptyRingError: If it was the last node
        """
        address = NodeRef.parse(node).address
        if address not in self:
            raise KeyError(f"Unknown node: {address}")
        return ConsistentHashRing(
            [n for n in self._nodes if n.address != address],
            self._hash_function,
            self._points_per_node,
        )

    def find_node(self, address: NodeLike) -> Optional[NodeRef]:
        """Look up a node by address."""
        wanted = NodeRef.parse(address).address
        for node in self._nodes:
            if node.address == wanted:
                return node
        return None

    @property
    def nodes(self) -> Tuple[NodeRef, ...]:
        """Nodes in configuration order."""
        return self._nodes

    @property
    def points(self) -> Sequence[RingPoint]:
        """Continuum points in ascending hash order."""
        return self._points

    @property
    def points_per_node(self) -> int:
        return self._points_per_node

    def __len__(self) -> int:
        """Get node count."""
        return len(self._nodes)

    def __contains__(self, node: object) -> bool:
        """Check if node in ring."""
        if not isinstance(node, (str, NodeRef)):
            return False
        return self.find_node(node) is not None

    def __repr__(self) -> str:
        return f"ConsistentHashRing(nodes={len(self._nodes)}, points={len(self._points)})"


__all__ = ["ConsistentHashRing", "RingPoint", "DEFAULT_POINTS_PER_NODE"]
