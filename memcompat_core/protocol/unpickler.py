"""Memcompat Unpickler - Restricted Pickle Decoder.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

Decodes the scalar pickles Python producers emit for ``str``, ``bytes``,
``int``, ``bool`` and ``None`` under protocols 0 through 2. Containers,
classes and newer protocols are refused.
"""

from __future__ import annotations

import re
import struct
from typing import Any, Callable, Dict, List, Optional

from memcompat_core.errors import (
    MalformedStream,
    ParseError,
    StackUnderflow,
    TruncatedStream,
    UnsupportedOpcode,
    UnsupportedProtocol,
)

HIGHEST_PROTOCOL = 2

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1

# Opcodes
PROTO = 0x80
STOP = ord(".")
NONE = ord("N")
NEWTRUE = 0x88
NEWFALSE = 0x89
INT = ord("I")
LONG = ord("L")
BININT = ord("J")
BININT1 = ord("K")
BININT2 = ord("M")
LONG1 = 0x8A
LONG4 = 0x8B
SHORT_BINSTRING = ord("U")
BINSTRING = ord("T")
BINUNICODE = ord("X")
UNICODE = ord("V")
PUT = ord("p")
BINPUT = ord("q")
LONG_BINPUT = ord("r")
GET = ord("g")
BINGET = ord("h")
LONG_BINGET = ord("j")

_DECIMAL = re.compile(rb"[+-]?[0-9]+\Z")


def check_int64(value: int, position: Optional[int] = None) -> int:
    """Reject integers outside the signed 64-bit range."""
    if value < INT64_MIN or value > INT64_MAX:
        raise ParseError(f"integer {value} out of int64 range", position)
    return value


def parse_int64(text: bytes, position: Optional[int] = None) -> int:
    """Parse ASCII base-10 text with an optional sign into an int64.

    Args:
        text: ASCII digits, optionally prefixed with + or -
        position: Stream offset for error reporting

    Returns:
        Parsed integer

    Raises:
        ParseError: If the text is not a well-formed int64
    """
    if not _DECIMAL.match(text):
        raise ParseError(f"malformed integer text {text!r}", position)
    return check_int64(int(text), position)


class PickleDecoder:
    """Stack machine over a restricted pickle opcode set.

    One decoder instance decodes one stream. The stack and memo belong
    to the instance and are dropped with it.

    Example:
        value = PickleDecoder(b"\\x80\\x02X\\x02\\x00\\x00\\x00hiq\\x01.").load()
    """

    def __init__(self, data: bytes):
        """Initialize decoder.

        Args:
            data: Complete pickle stream
        """
        self._data = bytes(data)
        self._pos = 0
        self._stack: List[Any] = []
        self._memo: Dict[int, Any] = {}
        self._stopped = False
        self._result: Any = None

    def load(self) -> Any:
        """Run the stream to STOP.

        Returns:
            The single value left on the stack

        Raises:
            DecodeError: On any malformed, truncated or unsupported input
        """
        while not self._stopped:
            if self._pos >= len(self._data):
                raise TruncatedStream("stream ended before STOP", self._pos)

            opcode = self._data[self._pos]
            handler = self.dispatch.get(opcode)
            if handler is None:
                raise UnsupportedOpcode(opcode, self._pos)

            self._pos += 1
            handler(self)

        if self._pos != len(self._data):
            raise MalformedStream(
                f"{len(self._data) - self._pos} trailing bytes after STOP",
                self._pos,
            )
        return self._result

    # Stream access

    def _read(self, n: int) -> bytes:
        end = self._pos + n
        if n < 0 or end > len(self._data):
            raise TruncatedStream(
                f"needed {n} bytes, {len(self._data) - self._pos} remain",
                self._pos,
            )
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def _readline(self) -> bytes:
        end = self._data.find(b"\n", self._pos)
        if end < 0:
            raise TruncatedStream("unterminated text operand", self._pos)
        line = self._data[self._pos:end]
        self._pos = end + 1
        return line

    def _push(self, value: Any) -> None:
        self._stack.append(value)

    def _top(self) -> Any:
        if not self._stack:
            raise StackUnderflow("stack is empty", self._pos)
        return self._stack[-1]

    # Handlers

    def _load_proto(self) -> None:
        version = self._read(1)[0]
        if version > HIGHEST_PROTOCOL:
            raise UnsupportedProtocol(version, self._pos - 1)

    def _load_stop(self) -> None:
        if not self._stack:
            raise StackUnderflow("STOP on empty stack", self._pos - 1)
        if len(self._stack) != 1:
            raise MalformedStream(
                f"STOP with {len(self._stack)} stack items", self._pos - 1
            )
        self._result = self._stack.pop()
        self._stopped = True

    def _load_none(self) -> None:
        self._push(None)

    def _load_true(self) -> None:
        self._push(True)

    def _load_false(self) -> None:
        self._push(False)

    def _load_int(self) -> None:
        start = self._pos
        text = self._readline()
        # Protocol 0 spells booleans as INT 01 / INT 00
        if text == b"01":
            self._push(True)
        elif text == b"00":
            self._push(False)
        else:
            self._push(parse_int64(text, start))

    def _load_long(self) -> None:
        start = self._pos
        text = self._readline()
        if text.endswith(b"L"):
            text = text[:-1]
        self._push(parse_int64(text, start))

    def _load_binint(self) -> None:
        self._push(struct.unpack("<i", self._read(4))[0])

    def _load_binint1(self) -> None:
        self._push(self._read(1)[0])

    def _load_binint2(self) -> None:
        self._push(struct.unpack("<H", self._read(2))[0])

    def _load_long1(self) -> None:
        n = self._read(1)[0]
        self._push(self._decode_long(self._read(n)))

    def _load_long4(self) -> None:
        n = struct.unpack("<i", self._read(4))[0]
        if n < 0:
            raise MalformedStream("negative LONG4 byte count", self._pos - 4)
        self._push(self._decode_long(self._read(n)))

    def _load_short_binstring(self) -> None:
        n = self._read(1)[0]
        self._push(self._read(n))

    def _load_binstring(self) -> None:
        n = struct.unpack("<i", self._read(4))[0]
        if n < 0:
            raise MalformedStream("negative BINSTRING length", self._pos - 4)
        self._push(self._read(n))

    def _load_binunicode(self) -> None:
        # Length counts encoded bytes, not characters
        n = struct.unpack("<I", self._read(4))[0]
        start = self._pos
        payload = self._read(n)
        try:
            self._push(payload.decode("utf-8", "surrogatepass"))
        except UnicodeDecodeError as e:
            raise MalformedStream(f"invalid UTF-8 in BINUNICODE: {e}", start)

    def _load_unicode(self) -> None:
        start = self._pos
        line = self._readline()
        try:
            self._push(line.decode("raw-unicode-escape"))
        except UnicodeDecodeError as e:
            raise MalformedStream(f"invalid UNICODE escape: {e}", start)

    def _load_put(self) -> None:
        start = self._pos
        text = self._readline()
        if not text.isdigit():
            raise MalformedStream(f"bad PUT index {text!r}", start)
        self._memo[int(text)] = self._top()

    def _load_binput(self) -> None:
        index = self._read(1)[0]
        self._memo[index] = self._top()

    def _load_long_binput(self) -> None:
        index = struct.unpack("<I", self._read(4))[0]
        self._memo[index] = self._top()

    def _load_get(self) -> None:
        start = self._pos
        text = self._readline()
        if not text.isdigit():
            raise MalformedStream(f"bad GET index {text!r}", start)
        self._push_memo(int(text), start)

    def _load_binget(self) -> None:
        self._push_memo(self._read(1)[0], self._pos - 1)

    def _load_long_binget(self) -> None:
        self._push_memo(struct.unpack("<I", self._read(4))[0], self._pos - 4)

    # Helpers

    def _push_memo(self, index: int, position: int) -> None:
        if index not in self._memo:
            raise MalformedStream(f"memo index {index} never stored", position)
        self._push(self._memo[index])

    def _decode_long(self, data: bytes) -> int:
        if not data:
            return 0
        return check_int64(
            int.from_bytes(data, "little", signed=True), self._pos - len(data)
        )

    dispatch: Dict[int, Callable[["PickleDecoder"], None]] = {
        PROTO: _load_proto,
        STOP: _load_stop,
        NONE: _load_none,
        NEWTRUE: _load_true,
        NEWFALSE: _load_false,
        INT: _load_int,
        LONG: _load_long,
        BININT: _load_binint,
        BININT1: _load_binint1,
        BININT2: _load_binint2,
        LONG1: _load_long1,
        LONG4: _load_long4,
        SHORT_BINSTRING: _load_short_binstring,
        BINSTRING: _load_binstring,
        BINUNICODE: _load_binunicode,
        UNICODE: _load_unicode,
        PUT: _load_put,
        BINPUT: _load_binput,
        LONG_BINPUT: _load_long_binput,
        GET: _load_get,
        BINGET: _load_binget,
        LONG_BINGET: _load_long_binget,
    }


def loads(data: bytes) -> Any:
    """Decode a scalar pickle.

    Args:
        data: Pickle bytes

    Returns:
        Decoded str, bytes, int, bool or None

    Raises:
        DecodeError: If the stream is malformed or uses unsupported opcodes
    """
    return PickleDecoder(data).load()


__all__ = [
    "PickleDecoder",
    "loads",
    "parse_int64",
    "check_int64",
    "HIGHEST_PROTOCOL",
    "INT64_MIN",
    "INT64_MAX",
]
