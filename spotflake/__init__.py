"""
SpotFlake

Node-local generator of time-ordered, 63-bit Snowflake identifiers and the
string codecs used to pass them through URLs and short tokens.

    >>> from spotflake import SnowflakeNode, encode
    >>> node = SnowflakeNode(node_id=1)
    >>> token = encode(node.generate(), "base58")
"""

from spotflake.core.config import Settings, settings
from spotflake.core.exceptions import (
    ClockMovedBackwardsError,
    ClockUnavailableError,
    ConstructionError,
    DecodeError,
    EmptyInputError,
    IdentifierRangeError,
    InvalidCharacterError,
    SpotFlakeError,
    TimestampOverflowError,
    ValueOutOfRangeError,
)
from spotflake.services.provider import build_node, get_node, reset_node
from spotflake.utils.clock import ClockSource, SystemClock, from_millis, system_clock, to_millis
from spotflake.utils.codec import (
    Encoding,
    decode,
    decode_base2,
    decode_base32,
    decode_base36,
    decode_base58,
    decode_base64,
    decode_decimal,
    encode,
    encode_base2,
    encode_base32,
    encode_base36,
    encode_base58,
    encode_base64,
    encode_decimal,
    from_bytes,
    to_bytes,
)
from spotflake.utils.layout import DEFAULT_EPOCH, MAX_IDENTIFIER, FlakeLayout, FlakeParts
from spotflake.utils.snowflake import ClockRegressionPolicy, SnowflakeNode

__version__ = "1.0.0"

__all__ = [
    "ClockMovedBackwardsError",
    "ClockRegressionPolicy",
    "ClockSource",
    "ClockUnavailableError",
    "ConstructionError",
    "DEFAULT_EPOCH",
    "DecodeError",
    "EmptyInputError",
    "Encoding",
    "FlakeLayout",
    "FlakeParts",
    "IdentifierRangeError",
    "InvalidCharacterError",
    "MAX_IDENTIFIER",
    "Settings",
    "SnowflakeNode",
    "SpotFlakeError",
    "SystemClock",
    "TimestampOverflowError",
    "ValueOutOfRangeError",
    "build_node",
    "decode",
    "decode_base2",
    "decode_base32",
    "decode_base36",
    "decode_base58",
    "decode_base64",
    "decode_decimal",
    "encode",
    "encode_base2",
    "encode_base32",
    "encode_base36",
    "encode_base58",
    "encode_base64",
    "encode_decimal",
    "from_bytes",
    "from_millis",
    "get_node",
    "reset_node",
    "settings",
    "system_clock",
    "to_bytes",
    "to_millis",
]
