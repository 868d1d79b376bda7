"""Memcompat Errors - Exception Hierarchy.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from typing import Optional


class MemcompatError(Exception):
    """Base class for all memcompat errors."""


class DecodeError(MemcompatError):
    """A stored value could not be decoded.

    Attributes:
        position: Offset into the byte stream, when known
    """

    def __init__(self, message: str, position: Optional[int] = None):
        if position is not None:
            message = f"{message} (at offset {position})"
        super().__init__(message)
        self.position = position


class UnsupportedOpcode(DecodeError):
    """Pickle opcode outside the supported scalar subset."""

    def __init__(self, opcode: int, position: Optional[int] = None):
        super().__init__(f"unsupported pickle opcode 0x{opcode:02x}", position)
        self.opcode = opcode


class UnsupportedProtocol(DecodeError):
    """Pickle protocol version newer than 2."""

    def __init__(self, version: int, position: Optional[int] = None):
        super().__init__(f"unsupported pickle protocol {version}", position)
        self.version = version


class TruncatedStream(DecodeError):
    """Stream ended before an opcode, operand or STOP was complete."""


class MalformedStream(DecodeError):
    """Stream is structurally invalid."""


class StackUnderflow(MalformedStream):
    """Opcode needed a stack value that was not there."""


class InvalidType(DecodeError):
    """Flag/content combination is not decodable as the requested kind."""


class ParseError(DecodeError):
    """Malformed ASCII integer, boolean or text payload."""


class EncodeError(MemcompatError, ValueError):
    """Value cannot be represented in the wire format."""


class RingError(MemcompatError):
    """Hash ring could not be built."""


class EmptyRingError(RingError, ValueError):
    """Hash ring built from an empty node list."""


class MalformedKeyError(MemcompatError, ValueError):
    """Key is not acceptable to memcached."""


class StoreError(MemcompatError):
    """Store backend failed to complete a request."""


__all__ = [
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
