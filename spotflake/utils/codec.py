"""
Alphabet Codec Module

String forms of 63-bit identifiers for systems that cannot carry raw 64-bit
integers (URLs, short tokens, JavaScript clients).

Encodings:
    - decimal: plain base-10 digits.
    - base2:   binary digits, the longest form.
    - base32:  z-base-32 symbol set used positionally (like base58), not the
               RFC 4648 byte packing. NOTE: many base32 variants exist, be
               careful when interoperating.
    - base36:  digits then lower-case letters.
    - base58:  the Bitcoin style set without ``0``, ``O``, ``I`` and ``l``;
               the shortest form.
    - base64:  standard base64 of the *decimal string*, not of the integer
               bytes. ``324932740761784320`` becomes
               ``"MzI0OTMyNzQwNzYxNzg0MzIw"``. Existing tokens depend on this,
               so keep it.

Every decoder raises a ``DecodeError`` subclass on failure:
    - ``EmptyInputError`` for an empty string,
    - ``InvalidCharacterError`` for a symbol outside the alphabet,
    - ``ValueOutOfRangeError`` when the value does not fit in 63 bits.
"""

import base64
import binascii
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Union

from spotflake.core.exceptions import (
    EmptyInputError,
    IdentifierRangeError,
    InvalidCharacterError,
    ValueOutOfRangeError,
)
from spotflake.services.logger import setup_logger
from spotflake.utils.layout import MAX_IDENTIFIER

logger = setup_logger()

BASE2_ALPHABET = "01"
BASE32_ALPHABET = "ybndrfg8ejkmcpqxot1uwisza345h769"
BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
BASE58_ALPHABET = "123456789abcdefghijkmnopqrstuvwxyzABCDEFGHJKLMNPQRSTUVWXYZ"
DECIMAL_ALPHABET = "0123456789"


def _reverse_lookup(alphabet: str) -> Mapping[str, int]:
    return MappingProxyType({char: index for index, char in enumerate(alphabet)})


# NOTE: The dictionaries allow O(1) look-ups while decoding
BASE2_LOOKUP = _reverse_lookup(BASE2_ALPHABET)
BASE32_LOOKUP = _reverse_lookup(BASE32_ALPHABET)
BASE58_LOOKUP = _reverse_lookup(BASE58_ALPHABET)
DECIMAL_LOOKUP = _reverse_lookup(DECIMAL_ALPHABET)
# Base36 decoding is case-insensitive
BASE36_LOOKUP = MappingProxyType(
    {**_reverse_lookup(BASE36_ALPHABET), **_reverse_lookup(BASE36_ALPHABET.upper())}
)


class Encoding(str, Enum):
    DECIMAL = "decimal"
    BASE2 = "base2"
    BASE32 = "base32"
    BASE36 = "base36"
    BASE58 = "base58"
    BASE64 = "base64"


_RADIX_TO_ENCODING = {
    10: Encoding.DECIMAL,
    2: Encoding.BASE2,
    32: Encoding.BASE32,
    36: Encoding.BASE36,
    58: Encoding.BASE58,
    64: Encoding.BASE64,
}


def _logged(error: Exception) -> Exception:
    logger.warning("%s", error)
    return error


def _check_identifier(identifier: int) -> None:
    if isinstance(identifier, bool) or not isinstance(identifier, int):
        raise _logged(
            IdentifierRangeError(f"Identifier must be an integer, got {identifier!r}")
        )
    if not 0 <= identifier <= MAX_IDENTIFIER:
        raise _logged(
            IdentifierRangeError(
                f"Identifier must be between 0 and {MAX_IDENTIFIER}, got {identifier}"
            )
        )


def _encode_positional(identifier: int, alphabet: str) -> str:
    _check_identifier(identifier)
    base = len(alphabet)
    if identifier < base:
        return alphabet[identifier]

    symbols = []
    while identifier > 0:
        identifier, remainder = divmod(identifier, base)
        symbols.append(alphabet[remainder])
    symbols.reverse()
    return "".join(symbols)


def _decode_positional(text: str, lookup: Mapping[str, int], base: int, name: str) -> int:
    if not text:
        raise _logged(EmptyInputError(f"Cannot decode an empty {name} string", text))

    total = 0
    for position, char in enumerate(text):
        value = lookup.get(char)
        if value is None:
            raise _logged(
                InvalidCharacterError(
                    f"Invalid {name} character {char!r} at position {position}",
                    text,
                    character=char,
                    position=position,
                )
            )
        total = total * base + value
        # Reject as soon as the value no longer fits in 63 bits
        if total > MAX_IDENTIFIER:
            raise _logged(
                ValueOutOfRangeError(
                    f"Decoded {name} value exceeds the 63-bit identifier range",
                    text[:32],
                )
            )

    return total


def encode_decimal(identifier: int) -> str:
    _check_identifier(identifier)
    return str(identifier)


def decode_decimal(text: str) -> int:
    return _decode_positional(text, DECIMAL_LOOKUP, 10, "decimal")


def encode_base2(identifier: int) -> str:
    return _encode_positional(identifier, BASE2_ALPHABET)


def decode_base2(text: str) -> int:
    return _decode_positional(text, BASE2_LOOKUP, 2, "base2")


def encode_base32(identifier: int) -> str:
    return _encode_positional(identifier, BASE32_ALPHABET)


def decode_base32(text: str) -> int:
    return _decode_positional(text, BASE32_LOOKUP, 32, "base32")


def encode_base36(identifier: int) -> str:
    return _encode_positional(identifier, BASE36_ALPHABET)


def decode_base36(text: str) -> int:
    return _decode_positional(text, BASE36_LOOKUP, 36, "base36")


def encode_base58(identifier: int) -> str:
    return _encode_positional(identifier, BASE58_ALPHABET)


def decode_base58(text: str) -> int:
    return _decode_positional(text, BASE58_LOOKUP, 58, "base58")


def to_bytes(identifier: int) -> bytes:
    """Returns the ASCII bytes of the decimal form, the payload of base64."""
    return encode_decimal(identifier).encode("ascii")


def from_bytes(data: bytes) -> int:
    """Parses ASCII decimal bytes back into an identifier."""
    try:
        text = data.decode("ascii")
    except UnicodeDecodeError as e:
        raise _logged(
            InvalidCharacterError(
                "Payload is not an ASCII decimal string",
                data[:32].decode("latin-1"),
                character=data[e.start:e.start + 1].decode("latin-1"),
                position=e.start,
            )
        ) from e
    return decode_decimal(text)


def encode_base64(identifier: int) -> str:
    return base64.b64encode(to_bytes(identifier)).decode("ascii")


def decode_base64(text: str) -> int:
    if not text:
        raise _logged(EmptyInputError("Cannot decode an empty base64 string", text))
    try:
        payload = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise _logged(InvalidCharacterError(f"Malformed base64 string: {e}", text[:32])) from e
    return from_bytes(payload)


_ENCODERS = {
    Encoding.DECIMAL: encode_decimal,
    Encoding.BASE2: encode_base2,
    Encoding.BASE32: encode_base32,
    Encoding.BASE36: encode_base36,
    Encoding.BASE58: encode_base58,
    Encoding.BASE64: encode_base64,
}

_DECODERS = {
    Encoding.DECIMAL: decode_decimal,
    Encoding.BASE2: decode_base2,
    Encoding.BASE32: decode_base32,
    Encoding.BASE36: decode_base36,
    Encoding.BASE58: decode_base58,
    Encoding.BASE64: decode_base64,
}


def resolve_encoding(encoding: Union[Encoding, str, int]) -> Encoding:
    """Accepts an ``Encoding``, its name (``"base58"``) or a radix (``58``)."""
    if isinstance(encoding, Encoding):
        return encoding
    if isinstance(encoding, int) and not isinstance(encoding, bool):
        if encoding not in _RADIX_TO_ENCODING:
            raise ValueError(f"Unsupported radix: {encoding}")
        return _RADIX_TO_ENCODING[encoding]
    try:
        return Encoding(str(encoding).lower())
    except ValueError:
        raise ValueError(f"Unsupported encoding: {encoding!r}") from None


def encode(identifier: int, encoding: Union[Encoding, str, int] = Encoding.DECIMAL) -> str:
    return _ENCODERS[resolve_encoding(encoding)](identifier)


def decode(text: str, encoding: Union[Encoding, str, int] = Encoding.DECIMAL) -> int:
    return _DECODERS[resolve_encoding(encoding)](text)
