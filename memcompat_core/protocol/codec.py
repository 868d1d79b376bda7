"""Memcompat Codec - Tagged Value Encoding.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from memcompat_core.errors import EncodeError, InvalidType, ParseError
from memcompat_core.protocol import unpickler
from memcompat_core.protocol.flags import TypeFlag
from memcompat_core.protocol.pickler import encode_unicode
from memcompat_core.protocol.unpickler import INT64_MAX, INT64_MIN, parse_int64

# PROTO 2, the first two bytes of every protocol-2 pickle
PICKLE_PREAMBLE = b"\x80\x02"

_TRUE = b"1"
_FALSE = b"0"


@dataclass(frozen=True)
class TaggedValue:
    """A stored value and its type flags.

    Attributes:
        value: Raw bytes as held by the server
        flags: Type flags carried next to the bytes
    """

    value: bytes
    flags: int = TypeFlag.NONE

    @property
    def type_flag(self) -> TypeFlag:
        """Flags as a TypeFlag."""
        return TypeFlag(self.flags)

    def __len__(self) -> int:
        return len(self.value)


class TaggedValueCodec:
    """Converts scalars to and from pylibmc-compatible tagged values.

    Wire conventions:
    - str: flags NONE, UTF-8 bytes as-is
    - unicode: flags PICKLE, protocol-2 pickle (see ``encode_unicode``)
    - int: flags INTEGER, ASCII decimal
    - bool: flags BOOL, ASCII ``1`` or ``0``

    Decoding is strict: malformed payloads raise a DecodeError subclass
    and never yield a partial value.

    Example:
        codec = TaggedValueCodec()
        item = codec.int64_item(1234567890)
        assert codec.decode_int(item.value, item.flags) == 1234567890
    """

    # Encoding

    def string_item(self, value: Union[str, bytes]) -> TaggedValue:
        """Encode text stored verbatim with flags NONE.

        Bytes must already be UTF-8. UTF-8 never starts with 0x80, so
        nothing stored here can be mistaken for a pickle on the way back.

        Raises:
            EncodeError: If the value is not (encodable as) UTF-8 text
        """
        if isinstance(value, str):
            try:
                value = value.encode("utf-8")
            except UnicodeEncodeError as e:
                raise EncodeError(f"text is not encodable as UTF-8: {e}") from e
        elif isinstance(value, bytes):
            try:
                value.decode("utf-8")
            except UnicodeDecodeError as e:
                raise EncodeError(f"bytes are not UTF-8 text: {e}") from e
        else:
            raise EncodeError(f"expected str or bytes, got {type(value).__name__}")
        return TaggedValue(value, TypeFlag.NONE)

    def unicode_item(self, value: str) -> TaggedValue:
        """Encode text as a pickled unicode object with flags PICKLE."""
        if not isinstance(value, str):
            raise EncodeError(f"expected str, got {type(value).__name__}")
        return TaggedValue(encode_unicode(value), TypeFlag.PICKLE)

    def int64_item(self, value: int) -> TaggedValue:
        """Encode a signed 64-bit integer as ASCII decimal with flags INTEGER."""
        if isinstance(value, bool) or not isinstance(value, int):
            raise EncodeError(f"expected int, got {type(value).__name__}")
        if value < INT64_MIN or value > INT64_MAX:
            raise EncodeError(f"integer {value} out of int64 range")
        return TaggedValue(str(value).encode("ascii"), TypeFlag.INTEGER)

    def bool_item(self, value: bool) -> TaggedValue:
        """Encode a boolean as ASCII ``1``/``0`` with flags BOOL."""
        if not isinstance(value, bool):
            raise EncodeError(f"expected bool, got {type(value).__name__}")
        return TaggedValue(_TRUE if value else _FALSE, TypeFlag.BOOL)

    def encode(self, value: Any) -> TaggedValue:
        """Encode a scalar by its Python type.

        Args:
            value: str, bytes, int or bool

        Returns:
            TaggedValue

        Raises:
            EncodeError: If the type has no wire representation
        """
        # bool first, it is an int subclass
        if isinstance(value, bool):
            return self.bool_item(value)
        if isinstance(value, int):
            return self.int64_item(value)
        if isinstance(value, (str, bytes)):
            return self.string_item(value)
        raise EncodeError(f"cannot encode {type(value).__name__}")

    # Decoding

    def decode(self, value: bytes, flags: int) -> Any:
        """Decode a stored value.

        Args:
            value: Raw bytes
            flags: Type flags stored with the bytes

        Returns:
            str, int or bool. Pickles yield text, or a bool from
            producers that pickled True/False.

        Raises:
            InvalidType: If the flags are not decodable, or a pickle
                holds anything but text or a bool
            ParseError: If text payloads are malformed
            DecodeError: If a pickle stream is malformed
        """
        if self.is_pickled(value, flags):
            return self._load_pickled_text(value)
        if flags == TypeFlag.NONE:
            try:
                return value.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ParseError(f"value is not UTF-8 text: {e}")
        if flags == TypeFlag.INTEGER or flags == TypeFlag.LONG:
            return parse_int64(value)
        if flags == TypeFlag.BOOL:
            return self._parse_bool(value)
        raise InvalidType(f"cannot decode value with flags {flags:#x}")

    def decode_string(self, value: bytes, flags: int) -> str:
        """Decode a value that must be text."""
        if flags != TypeFlag.NONE and flags != TypeFlag.PICKLE:
            raise InvalidType(f"flags {flags:#x} do not hold text")

        result = self.decode(value, flags)
        if not isinstance(result, str):
            raise InvalidType(f"pickled {type(result).__name__} is not text")
        return result

    def decode_int(self, value: bytes, flags: int) -> int:
        """Decode a value that must be a 64-bit integer."""
        if flags == TypeFlag.NONE and not self.is_pickled(value, flags):
            raise InvalidType("plain text is not an integer")

        result = self.decode(value, flags)
        if isinstance(result, bool) or not isinstance(result, int):
            raise InvalidType(f"{type(result).__name__} is not an integer")
        return result

    def decode_bool(self, value: bytes, flags: int) -> bool:
        """Decode a value that must be a boolean.

        Accepts BOOL, legacy INTEGER ``0``/``1`` and pickled True/False.
        Any other integer text is an error, not a truthy value.
        """
        if flags == TypeFlag.BOOL or flags == TypeFlag.INTEGER:
            return self._parse_bool(value)
        if self.is_pickled(value, flags):
            result = unpickler.loads(value)
            if not isinstance(result, bool):
                raise InvalidType(f"pickled {type(result).__name__} is not a bool")
            return result
        raise InvalidType(f"flags {flags:#x} do not hold a bool")

    def is_pickled(self, value: bytes, flags: int) -> bool:
        """Check whether a value should go through the pickle decoder.

        Producers that forget the PICKLE flag are caught by the
        protocol-2 preamble on a NONE-flagged value.
        """
        if flags == TypeFlag.PICKLE:
            return True
        return flags == TypeFlag.NONE and value.startswith(PICKLE_PREAMBLE)

    def _load_pickled_text(self, value: bytes) -> Union[str, bool]:
        result = unpickler.loads(value)
        if isinstance(result, bytes):
            # Python 2 str pickled as a byte string
            try:
                return result.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ParseError(f"pickled string is not UTF-8: {e}")
        if isinstance(result, (str, bool)):
            return result
        raise InvalidType(f"pickled {type(result).__name__} is not text")

    def _parse_bool(self, value: bytes) -> bool:
        if value == _TRUE:
            return True
        if value == _FALSE:
            return False
        raise ParseError(f"malformed boolean text {value!r}")


__all__ = ["TaggedValue", "TaggedValueCodec", "PICKLE_PREAMBLE"]
