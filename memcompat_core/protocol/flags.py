"""Memcompat Flags - Value Type Flags.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from enum import IntFlag


class TypeFlag(IntFlag):
    """Type flags stored alongside each memcached value.

    Values match pylibmc's ``_pylibmcmodule.h`` so items round-trip
    between this client and Python producers.
    """

    NONE = 0
    PICKLE = 1 << 0     # pickled object (pylibmc pickles unicode and None)
    INTEGER = 1 << 1
    LONG = 1 << 2
    ZLIB = 1 << 3       # reserved, compression is not implemented
    BOOL = 1 << 4       # pylibmc addition


__all__ = ["TypeFlag"]
