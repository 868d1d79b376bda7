"""Tests for TaggedValueCodec and the unicode pickler.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

import pickle
import struct

import pytest

from memcompat_core.errors import DecodeError, EncodeError, InvalidType, ParseError
from memcompat_core.protocol.codec import TaggedValue, TaggedValueCodec
from memcompat_core.protocol.flags import TypeFlag
from memcompat_core.protocol.pickler import UNICODE_OVERHEAD, encode_unicode


INTERNATIONAL = "I\u00f1t\u00ebrn\u00e2ti\u00f4n\ufffdliz\u00e6ti\u00f8n"
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


@pytest.fixture
def codec():
    return TaggedValueCodec()


class TestFlags:
    """Tests for flag values shared with pylibmc."""

    def test_values(self):
        """Test bit assignments."""
        assert TypeFlag.NONE == 0
        assert TypeFlag.PICKLE == 1
        assert TypeFlag.INTEGER == 2
        assert TypeFlag.LONG == 4
        assert TypeFlag.ZLIB == 8
        assert TypeFlag.BOOL == 16


class TestUnicodePickler:
    """Tests for the fixed-shape unicode emitter."""

    def test_international_layout(self):
        """Test exact bytes for a multi-byte string."""
        payload = INTERNATIONAL.encode("utf-8")
        expected = (
            b"\x80\x02\x58"
            + struct.pack("<I", len(payload))
            + payload
            + b"\x71\x01\x2e"
        )

        data = encode_unicode(INTERNATIONAL)

        assert data == expected
        assert len(data) == len(payload) + 10

    def test_empty(self):
        """Test the empty string."""
        assert encode_unicode("") == b"\x80\x02X\x00\x00\x00\x00q\x01."
        assert UNICODE_OVERHEAD == 10

    def test_stdlib_reads_it(self):
        """Test Python's own unpickler accepts the output."""
        assert pickle.loads(encode_unicode(INTERNATIONAL)) == INTERNATIONAL


class TestEncode:
    """Tests for encoding scalars."""

    def test_string_item(self, codec):
        """Test plain strings are stored verbatim."""
        item = codec.string_item(INTERNATIONAL)

        assert item.flags == TypeFlag.NONE
        assert item.value == INTERNATIONAL.encode("utf-8")

    def test_string_item_bytes(self, codec):
        """Test UTF-8 bytes pass through."""
        assert codec.string_item(b"raw").value == b"raw"
        assert codec.string_item("é".encode("utf-8")).value == b"\xc3\xa9"

    @pytest.mark.parametrize("value", [b"\xff\xfe", b"\x80\x02hello", b"\x80\x02X\x00\x00\x00\x00q\x01."])
    def test_string_item_rejects_undecodable_bytes(self, codec, value):
        """Test bytes that could not be read back as text."""
        with pytest.raises(EncodeError):
            codec.string_item(value)
        with pytest.raises(EncodeError):
            codec.encode(value)

    @pytest.mark.parametrize("value", ["\ud800", "ok\udfffok"])
    def test_lone_surrogates(self, codec, value):
        """Test text with unpaired surrogates."""
        with pytest.raises(EncodeError):
            codec.string_item(value)
        with pytest.raises(EncodeError):
            codec.unicode_item(value)
        with pytest.raises(EncodeError):
            codec.encode(value)
        with pytest.raises(EncodeError):
            encode_unicode(value)

    def test_unicode_item(self, codec):
        """Test unicode strings are pickled."""
        item = codec.unicode_item(INTERNATIONAL)

        assert item.flags == TypeFlag.PICKLE
        assert item.value == encode_unicode(INTERNATIONAL)

    def test_int64_item(self, codec):
        """Test integer text."""
        item = codec.int64_item(1234567890)

        assert item.value == b"1234567890"
        assert item.flags == TypeFlag.INTEGER

    def test_negative_int(self, codec):
        """Test negative integers keep a leading minus."""
        assert codec.int64_item(-42).value == b"-42"
        assert codec.int64_item(INT64_MIN).value == b"-9223372036854775808"

    def test_bool_item(self, codec):
        """Test booleans are ASCII digits."""
        assert codec.bool_item(True) == TaggedValue(b"1", TypeFlag.BOOL)
        assert codec.bool_item(False) == TaggedValue(b"0", TypeFlag.BOOL)

    def test_encode_dispatch(self, codec):
        """Test type-based encoding."""
        assert codec.encode(True).flags == TypeFlag.BOOL
        assert codec.encode(7).flags == TypeFlag.INTEGER
        assert codec.encode("x").flags == TypeFlag.NONE
        assert codec.encode(b"x").flags == TypeFlag.NONE

    @pytest.mark.parametrize("value", [INT64_MAX + 1, INT64_MIN - 1])
    def test_int_out_of_range(self, codec, value):
        """Test integers outside int64."""
        with pytest.raises(EncodeError):
            codec.int64_item(value)

    def test_rejects_wrong_types(self, codec):
        """Test typed constructors check their input."""
        with pytest.raises(EncodeError):
            codec.int64_item(True)
        with pytest.raises(EncodeError):
            codec.bool_item(1)
        with pytest.raises(EncodeError):
            codec.unicode_item(b"bytes")
        with pytest.raises(EncodeError):
            codec.encode(None)
        with pytest.raises(ValueError):
            codec.encode(1.5)


class TestRoundTrip:
    """Tests decode(encode(v)) == v."""

    @pytest.mark.parametrize("value", ["", "hello", INTERNATIONAL, "\U0001f600"])
    def test_strings(self, codec, value):
        """Test plain and pickled strings."""
        plain = codec.string_item(value)
        pickled = codec.unicode_item(value)

        assert codec.decode_string(plain.value, plain.flags) == value
        assert codec.decode_string(pickled.value, pickled.flags) == value
        assert codec.decode(pickled.value, pickled.flags) == value

    @pytest.mark.parametrize("value", [0, 1, -1, 1234567890, INT64_MIN, INT64_MAX])
    def test_ints(self, codec, value):
        """Test integers including extremes."""
        item = codec.int64_item(value)

        assert codec.decode_int(item.value, item.flags) == value
        assert codec.decode(item.value, item.flags) == value

    @pytest.mark.parametrize("value", [True, False])
    def test_bools(self, codec, value):
        """Test both booleans."""
        item = codec.bool_item(value)

        assert codec.decode_bool(item.value, item.flags) is value
        assert codec.decode(item.value, item.flags) is value


class TestDecode:
    """Tests for decoding stored values."""

    def test_pickle_fallback_on_none_flag(self, codec):
        """Test NONE-flagged pickles decode like PICKLE-flagged ones."""
        data = encode_unicode(INTERNATIONAL)

        assert codec.decode(data, TypeFlag.NONE) == codec.decode(data, TypeFlag.PICKLE)
        assert codec.decode_string(data, TypeFlag.NONE) == INTERNATIONAL

    def test_python2_byte_string(self, codec):
        """Test pickled Python 2 str is readable as text."""
        assert codec.decode_string(b"\x80\x02U\x03abcq\x01.", TypeFlag.PICKLE) == "abc"

    @pytest.mark.parametrize("value", [None, 5, -1, 2 ** 40])
    def test_pickled_non_text(self, codec, value):
        """Test pickled values other than text or bool are rejected."""
        data = pickle.dumps(value, protocol=2)

        with pytest.raises(InvalidType):
            codec.decode(data, TypeFlag.PICKLE)
        with pytest.raises(InvalidType):
            codec.decode(data, TypeFlag.NONE)
        with pytest.raises(InvalidType):
            codec.decode_string(data, TypeFlag.PICKLE)

    def test_pickled_byte_string_is_text(self, codec):
        """Test generic decode turns Python 2 byte strings into str."""
        assert codec.decode(b"\x80\x02U\x03abcq\x01.", TypeFlag.PICKLE) == "abc"

    def test_pickled_non_utf8_byte_string(self, codec):
        """Test Python 2 byte strings that are not UTF-8."""
        with pytest.raises(ParseError):
            codec.decode(b"\x80\x02U\x01\xffq\x01.", TypeFlag.PICKLE)

    def test_pickled_bool(self, codec):
        """Test generic decode keeps pickled booleans."""
        assert codec.decode(pickle.dumps(True, protocol=2), TypeFlag.PICKLE) is True

        assert codec.decode(data, TypeFlag.PICKLE) is None
        with pytest.raises(InvalidType):
            codec.decode_string(data, TypeFlag.PICKLE)

    def test_long_flag(self, codec):
        """Test LONG-flagged integers."""
        assert codec.decode_int(b"12345678901", TypeFlag.LONG) == 12345678901

    def test_plus_sign_accepted(self, codec):
        """Test a leading plus sign parses."""
        assert codec.decode_int(b"+5", TypeFlag.INTEGER) == 5

    @pytest.mark.parametrize("text", [b"", b"12a", b" 5", b"5.0", b"9223372036854775808"])
    def test_malformed_integer(self, codec, text):
        """Test bad integer text is an error, not zero."""
        with pytest.raises(ParseError):
            codec.decode_int(text, TypeFlag.INTEGER)

    def test_invalid_utf8_text(self, codec):
        """Test NONE-flagged bytes that are not UTF-8."""
        with pytest.raises(ParseError):
            codec.decode(b"\xff\xfe", TypeFlag.NONE)

    @pytest.mark.parametrize("flags", [
        TypeFlag.ZLIB,
        TypeFlag.PICKLE | TypeFlag.ZLIB,
        TypeFlag.INTEGER | TypeFlag.BOOL,
        0x40,
    ])
    def test_unknown_flags(self, codec, flags):
        """Test flags with no decoding."""
        with pytest.raises(InvalidType):
            codec.decode(b"1", flags)

    def test_string_wrong_type(self, codec):
        """Test text accessor on non-text values."""
        with pytest.raises(InvalidType):
            codec.decode_string(b"5", TypeFlag.INTEGER)
        with pytest.raises(InvalidType):
            codec.decode_string(pickle.dumps(5, protocol=2), TypeFlag.PICKLE)

    def test_int_wrong_type(self, codec):
        """Test integer accessor on non-integer values."""
        with pytest.raises(InvalidType):
            codec.decode_int(b"5", TypeFlag.NONE)
        with pytest.raises(InvalidType):
            codec.decode_int(b"1", TypeFlag.BOOL)
        with pytest.raises(InvalidType):
            codec.decode_int(pickle.dumps(True, protocol=2), TypeFlag.PICKLE)

    def test_pickled_int(self, codec):
        """Test integer accessor refuses pickled ints."""
        with pytest.raises(InvalidType):
            codec.decode_int(pickle.dumps(300, protocol=2), TypeFlag.PICKLE)

    def test_corrupt_pickle(self, codec):
        """Test a truncated pickle never yields a value."""
        data = encode_unicode("hello")[:-3]

        with pytest.raises(DecodeError):
            codec.decode_string(data, TypeFlag.PICKLE)


class TestDecodeBool:
    """Tests for boolean decoding and legacy integers."""

    def test_legacy_integer_one(self, codec):
        """Test INTEGER 1 is true."""
        assert codec.decode_bool(b"1", TypeFlag.INTEGER) is True
        assert codec.decode_bool(b"0", TypeFlag.INTEGER) is False

    @pytest.mark.parametrize("text", [b"2", b"-1", b"01", b"10"])
    def test_other_integers_rejected(self, codec, text):
        """Test only exact 0/1 text counts."""
        with pytest.raises(ParseError):
            codec.decode_bool(text, TypeFlag.INTEGER)

    @pytest.mark.parametrize("text", [b"", b"true", b"True", b" 1"])
    def test_bad_bool_text(self, codec, text):
        """Test BOOL payloads other than 0/1."""
        with pytest.raises(ParseError):
            codec.decode_bool(text, TypeFlag.BOOL)

    @pytest.mark.parametrize("protocol", [0, 1, 2])
    def test_pickled_booleans(self, codec, protocol):
        """Test producers that pickle True/False."""
        assert codec.decode_bool(pickle.dumps(True, protocol=protocol), TypeFlag.PICKLE) is True
        assert codec.decode_bool(pickle.dumps(False, protocol=protocol), TypeFlag.PICKLE) is False

    def test_pickled_non_bool(self, codec):
        """Test pickled values that are not booleans."""
        with pytest.raises(InvalidType):
            codec.decode_bool(pickle.dumps(1, protocol=2), TypeFlag.PICKLE)

    def test_plain_text_rejected(self, codec):
        """Test NONE-flagged text is not a boolean."""
        with pytest.raises(InvalidType):
            codec.decode_bool(b"1", TypeFlag.NONE)


class TestTaggedValue:
    """Tests for the TaggedValue container."""

    def test_immutable(self):
        """Test fields cannot be reassigned."""
        item = TaggedValue(b"x", TypeFlag.NONE)

        with pytest.raises(AttributeError):
            item.value = b"y"

    def test_type_flag(self):
        """Test raw flags convert to TypeFlag."""
        assert TaggedValue(b"1", 2).type_flag is TypeFlag.INTEGER
        assert len(TaggedValue(b"abc", 0)) == 3


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
