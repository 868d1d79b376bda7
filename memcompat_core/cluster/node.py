"""Memcompat Node - Cache Server Identity.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

DEFAULT_PORT = 11211


@dataclass(frozen=True, order=True)
class NodeRef:
    """A cache server as configured.

    Identity is the ``host:port`` text. Hostnames are never resolved, so
    ring placement does not move when DNS does.

    Attributes:
        host: Hostname or IP literal
        port: TCP port
    """

    host: str
    port: int = DEFAULT_PORT

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("node host must not be empty")
        if not 0 < self.port < 65536:
            raise ValueError(f"invalid port {self.port} for {self.host}")

    @classmethod
    def parse(cls, address: Union[str, "NodeRef"]) -> "NodeRef":
        """Parse ``host:port``, ``host`` or ``[v6]:port``.

        Args:
            address: Address text or an existing NodeRef

        Returns:
            NodeRef

        Raises:
            ValueError: If the port is not numeric
        """
        if isinstance(address, NodeRef):
            return address

        text = address.strip()
        if text.startswith("["):
            host, sep, rest = text[1:].partition("]")
            if not sep:
                raise ValueError(f"unterminated IPv6 literal in {address!r}")
            port = rest[1:] if rest.startswith(":") else ""
            host = f"[{host}]"
        elif text.count(":") == 1:
            host, _, port = text.partition(":")
        else:
            host, port = text, ""

        if not port:
            return cls(host=host)
        if not port.isdigit():
            raise ValueError(f"invalid port in {address!r}")
        return cls(host=host, port=int(port))

    @property
    def address(self) -> str:
        """Canonical ``host:port`` text, the ring hash input."""
        return f"{self.host}:{self.port}"

    @property
    def connect_host(self) -> str:
        """Host without IPv6 brackets, for socket connects."""
        return self.host.strip("[]")

    def __str__(self) -> str:
        return self.address


__all__ = ["NodeRef", "DEFAULT_PORT"]
