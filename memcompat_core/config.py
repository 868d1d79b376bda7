"""Memcompat Config - Client Configuration.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from memcompat_core.cluster.hashing import DEFAULT_HASH
from memcompat_core.cluster.ring import DEFAULT_POINTS_PER_NODE

ENV_PREFIX = "MEMCOMPAT_"


@dataclass
class ClientConfig:
    """Client configuration.

    Attributes:
        servers: ``host:port`` addresses, hashed as written
        hash_function: Ring hash function name
        points_per_node: Continuum points per server
        connect_timeout: Seconds to wait for a connection
        timeout: Seconds to wait for a response
        default_expire: Expiry applied when a set gives none, 0 for never
    """

    servers: List[str] = field(default_factory=lambda: ["127.0.0.1:11211"])
    hash_function: str = DEFAULT_HASH
    points_per_node: int = DEFAULT_POINTS_PER_NODE
    connect_timeout: Optional[float] = 1.0
    timeout: Optional[float] = 1.0
    default_expire: int = 0

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientConfig":
        """Build a config from ``MEMCOMPAT_*`` environment variables.

        ``MEMCOMPAT_SERVERS`` is a comma-separated address list. Unset
        variables keep their defaults.

        Args:
            environ: Mapping to read, default ``os.environ``

        Returns:
            ClientConfig
        """
        env = os.environ if environ is None else environ
        config = cls()

        servers = env.get(f"{ENV_PREFIX}SERVERS")
        if servers:
            config.servers = [s.strip() for s in servers.split(",") if s.strip()]
        if f"{ENV_PREFIX}HASH" in env:
            config.hash_function = env[f"{ENV_PREFIX}HASH"]
        if f"{ENV_PREFIX}POINTS_PER_NODE" in env:
            config.points_per_node = int(env[f"{ENV_PREFIX}POINTS_PER_NODE"])
        if f"{ENV_PREFIX}CONNECT_TIMEOUT" in env:
            config.connect_timeout = float(env[f"{ENV_PREFIX}CONNECT_TIMEOUT"])
        if f"{ENV_PREFIX}TIMEOUT" in env:
            config.timeout = float(env[f"{ENV_PREFIX}TIMEOUT"])
        if f"{ENV_PREFIX}DEFAULT_EXPIRE" in env:
            config.default_expire = int(env[f"{ENV_PREFIX}DEFAULT_EXPIRE"])

        return config


__all__ = ["ClientConfig", "ENV_PREFIX"]
