"""Tests for the restricted pickle decoder.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

import pickle

import pytest

from memcompat_core.errors import (
    DecodeError,
    MalformedStream,
    ParseError,
    StackUnderflow,
    TruncatedStream,
    UnsupportedOpcode,
    UnsupportedProtocol,
)
from memcompat_core.protocol.unpickler import PickleDecoder, loads, parse_int64


INTERNATIONAL = "I\u00f1t\u00ebrn\u00e2ti\u00f4n\ufffdliz\u00e6ti\u00f8n"


class TestScalarPickles:
    """Tests decoding what Python picklers actually emit."""

    @pytest.mark.parametrize("protocol", [0, 1, 2])
    @pytest.mark.parametrize("value", [
        "",
        "hello",
        INTERNATIONAL,
        "back\\slash\nnewline",
        0,
        1,
        255,
        256,
        65535,
        65536,
        -1,
        -(2 ** 31),
        2 ** 31,
        2 ** 40,
        2 ** 63 - 1,
        -(2 ** 63),
        True,
        False,
        None,
    ])
    def test_stdlib_pickles(self, protocol, value):
        """Test stdlib pickler output decodes to the same value."""
        result = loads(pickle.dumps(value, protocol=protocol))

        assert result == value
        assert type(result) is type(value)

    def test_python2_unicode_layout(self):
        """Test the layout Python 2 emits for unicode (memo index 1)."""
        payload = "abc".encode("utf-8")
        data = b"\x80\x02X" + len(payload).to_bytes(4, "little") + payload + b"q\x01."

        assert loads(data) == "abc"

    def test_python2_short_binstring(self):
        """Test Python 2 byte strings decode to bytes."""
        assert loads(b"\x80\x02U\x03abcq\x01.") == b"abc"

    def test_binstring(self):
        """Test 4-byte length byte strings."""
        assert loads(b"T\x02\x00\x00\x00hi.") == b"hi"

    def test_length_counts_bytes(self):
        """Test BINUNICODE length is the encoded byte count."""
        text = "ñ"
        data = b"\x80\x02X\x02\x00\x00\x00" + text.encode("utf-8") + b"."

        assert loads(data) == text

    def test_protocol0_booleans(self):
        """Test INT 01/00 decode as booleans."""
        assert loads(b"I01\n.") is True
        assert loads(b"I00\n.") is False

    def test_protocol0_long(self):
        """Test LONG text with trailing L."""
        assert loads(b"L12345678901L\n.") == 12345678901

    def test_decoder_instance(self):
        """Test PickleDecoder used directly."""
        decoder = PickleDecoder(pickle.dumps("x", protocol=2))
        assert decoder.load() == "x"


class TestMalformedStreams:
    """Tests that bad input always fails loudly."""

    def test_empty_stream(self):
        """Test empty input."""
        with pytest.raises(TruncatedStream):
            loads(b"")

    def test_truncated_length_prefix(self):
        """Test BINUNICODE with a short length field."""
        with pytest.raises(TruncatedStream):
            loads(b"\x80\x02X\x05\x00")

    def test_truncated_payload(self):
        """Test BINUNICODE payload shorter than declared."""
        with pytest.raises(TruncatedStream):
            loads(b"\x80\x02X\x05\x00\x00\x00ab")

    def test_missing_stop(self):
        """Test stream ending without STOP."""
        with pytest.raises(TruncatedStream):
            loads(b"\x80\x02N")

    def test_unknown_opcode(self):
        """Test opcodes outside the subset are not skipped."""
        with pytest.raises(UnsupportedOpcode) as exc_info:
            loads(b"\x80\x02}q\x01.")

        assert exc_info.value.opcode == 0x7D
        assert exc_info.value.position == 2

    def test_stop_on_empty_stack(self):
        """Test STOP with no values."""
        with pytest.raises(MalformedStream):
            loads(b"\x80\x02.")

    def test_stop_with_two_values(self):
        """Test STOP with more than one value."""
        with pytest.raises(MalformedStream):
            loads(b"\x80\x02NN.")

    def test_put_on_empty_stack(self):
        """Test BINPUT with nothing to record."""
        with pytest.raises(StackUnderflow):
            loads(b"\x80\x02q\x01.")

    def test_get_unknown_memo(self):
        """Test BINGET of an index never stored."""
        with pytest.raises(MalformedStream):
            loads(b"\x80\x02h\x01.")

    def test_trailing_bytes(self):
        """Test bytes after STOP."""
        with pytest.raises(MalformedStream):
            loads(pickle.dumps("a", protocol=2) + b"x")

    def test_invalid_utf8(self):
        """Test BINUNICODE payload that is not UTF-8."""
        with pytest.raises(MalformedStream):
            loads(b"\x80\x02X\x01\x00\x00\x00\xff.")

    @pytest.mark.parametrize("protocol", [3, 4, 5])
    def test_newer_protocols(self, protocol):
        """Test protocol 3 and up are refused."""
        if protocol > pickle.HIGHEST_PROTOCOL:
            pytest.skip("protocol not available")

        with pytest.raises(UnsupportedProtocol) as exc_info:
            loads(pickle.dumps("abc", protocol=protocol))

        assert exc_info.value.version == protocol

    def test_python3_bytes(self):
        """Test bytes pickled by Python 3 need GLOBAL and are refused."""
        with pytest.raises(UnsupportedOpcode):
            loads(pickle.dumps(b"abc", protocol=2))

    def test_containers_refused(self):
        """Test lists are outside the scalar subset."""
        with pytest.raises(UnsupportedOpcode):
            loads(pickle.dumps(["a"], protocol=2))

    def test_int64_overflow(self):
        """Test integers beyond int64."""
        with pytest.raises(ParseError):
            loads(pickle.dumps(2 ** 63, protocol=2))

    def test_all_errors_are_decode_errors(self):
        """Test every failure shares the DecodeError base."""
        for data in [b"", b"\x80\x03N.", b"\x80\x02}.", b"\x80\x02."]:
            with pytest.raises(DecodeError):
                loads(data)


class TestParseInt64:
    """Tests for ASCII integer parsing."""

    @pytest.mark.parametrize("text,expected", [
        (b"0", 0),
        (b"-42", -42),
        (b"+7", 7),
        (b"007", 7),
        (b"9223372036854775807", 2 ** 63 - 1),
        (b"-9223372036854775808", -(2 ** 63)),
    ])
    def test_valid(self, text, expected):
        """Test well-formed integer text."""
        assert parse_int64(text) == expected

    @pytest.mark.parametrize("text", [
        b"",
        b"-",
        b" 1",
        b"1 ",
        b"1\n",
        b"1_000",
        b"0x10",
        b"1.5",
        b"9223372036854775808",
        "١".encode("utf-8"),
    ])
    def test_invalid(self, text):
        """Test malformed integer text."""
        with pytest.raises(ParseError):
            parse_int64(text)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
