"""Protocol module - Value flags and pickle codecs."""

from memcompat_core.protocol.flags import TypeFlag
from memcompat_core.protocol.codec import (
    TaggedValue,
    TaggedValueCodec,
)
from memcompat_core.protocol.pickler import encode_unicode
from memcompat_core.protocol.unpickler import PickleDecoder

__all__ = [
    "TypeFlag",
    "TaggedValue",
    "TaggedValueCodec",
    "PickleDecoder",
    "encode_unicode",
]
