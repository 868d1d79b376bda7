"""Memcompat Pickler - Unicode Pickle Emitter.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import struct

from memcompat_core.errors import EncodeError

# PROTO 2, then BINUNICODE
UNICODE_PREAMBLE = b"\x80\x02X"
# BINPUT 1, then STOP
UNICODE_TRAILER = b"q\x01."
UNICODE_OVERHEAD = len(UNICODE_PREAMBLE) + 4 + len(UNICODE_TRAILER)


def encode_unicode(value: str) -> bytes:
    """Pickle a string the way a Python 2 producer pickles ``unicode``.

    Layout: ``80 02 58 <u32 LE byte length> <utf-8> 71 01 2e``.

    Args:
        value: Text to pickle

    Returns:
        Pickle bytes, always ``len(utf8) + 10`` long

    Raises:
        EncodeError: If the text holds lone surrogates
    """
    try:
        payload = value.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodeError(f"text is not encodable as UTF-8: {e}") from e
    return b"".join((
        UNICODE_PREAMBLE,
        struct.pack("<I", len(payload)),
        payload,
        UNICODE_TRAILER,
    ))


__all__ = ["encode_unicode", "UNICODE_OVERHEAD"]
