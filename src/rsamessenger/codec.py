"""Key text encoding and the integer marshalling rules shared by keys and messages.

A key is stored as two length-prefixed integers, exponent first and modulus second, wrapped in base64. Length fields
are 4-byte big-endian unsigned. Integers themselves are written little-endian in their minimal two's-complement width,
which is the layout existing messenger peers produce and expect, and which guarantees a clear sign bit on the top byte.

`BYTE_ORDER` is deliberately "little": it matches .NET's ``BigInteger.ToByteArray()``, which wrote the keys already
stored by the messenger. A big-endian layout would read more naturally, but it would not decode those keys.

Typical usage example:

    text = encode_key(65537, n)
    expo, mod = decode_key(text)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import base64
import binascii

from rsamessenger.errors import MalformedKeyError

BYTE_ORDER = "little"
LENGTH_FIELD = 4
_LENGTH_CAP = 2**(8 * LENGTH_FIELD) - 1


def canonical_size(value: int) -> int:
    """Byte count of the minimal two's-complement form of a non-negative integer.

    Always reserves room for a clear sign bit, so 255 takes two bytes and 0 takes one.
    """
    return value.bit_length() // 8 + 1


def integer_to_bytes(msg: int, fixedlen: int | None = None) -> bytes:
    """Converts a non-negative integer to bytes.

    Args:
        msg: The integer to unmarshal.
        fixedlen: The target length of the byte string.
            If not provided the canonical (sign-safe) width is used.

    Returns:
        The representative bytes.

    Raises:
        ValueError: If `msg` is negative.
        OverflowError: If `msg` does not fit in `fixedlen` bytes.
    """
    if msg < 0:
        raise ValueError("Only non-negative integers can be marshalled.")
    if fixedlen is None:
        fixedlen = canonical_size(msg)
    return msg.to_bytes(fixedlen, byteorder=BYTE_ORDER, signed=False)


def bytes_to_integer(msg: bytes) -> int:
    """Converts a byte string to its unsigned integer representative."""
    return int.from_bytes(msg, byteorder=BYTE_ORDER, signed=False)


def minimal_bytes(msg: int) -> bytes:
    """Shortest unsigned byte string for `msg`; empty for zero."""
    return integer_to_bytes(msg, (msg.bit_length() + 7) // 8)


def b64_enc(msg: int) -> str:
    """Encodes an integer into a base64 string using its canonical bytes."""
    return base64.b64encode(integer_to_bytes(msg)).decode("ascii")


def b64_dec(msg: str) -> int:
    """Decodes a base64 encoded string into an int.

    Raises:
        binascii.Error: If `msg` is not valid base64.
    """
    return bytes_to_integer(base64.b64decode(msg.encode("ascii"), validate=True))


def _length_field(size: int) -> bytes:
    if size > _LENGTH_CAP:
        raise ValueError(f"Integer of {size} bytes does not fit a {LENGTH_FIELD}-byte length field.")
    return size.to_bytes(LENGTH_FIELD, byteorder="big", signed=False)


def encode_key(value: int, modulus: int) -> str:
    """Serializes an (exponent, modulus) pair into key text.

    Args:
        value: The exponent, public or private.
        modulus: The modulus shared by the key pair.

    Returns:
        Base64 key text.

    Raises:
        ValueError: If either integer is negative.
    """
    if value < 0 or modulus < 0:
        raise ValueError("Key components must be non-negative.")
    parcel = bytearray()
    for part in (value, modulus):
        raw = integer_to_bytes(part)
        parcel += _length_field(len(raw))
        parcel += raw
    return base64.b64encode(bytes(parcel)).decode("ascii")


def decode_key(text: str) -> tuple[int, int]:
    """Deserializes key text into its (exponent, modulus) pair.

    Args:
        text: Base64 key text as produced by `encode_key`.

    Returns:
        Tuple of (value, modulus).

    Raises:
        MalformedKeyError: If the text is not base64 or the buffer does not match the declared lengths.
    """
    try:
        buf = base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise MalformedKeyError("Key text is not valid base64.") from exc
    parts = []
    pos = 0
    for name in ("value", "modulus"):
        if len(buf) - pos < LENGTH_FIELD:
            raise MalformedKeyError(f"Key buffer truncated before the {name} length field.")
        size = int.from_bytes(buf[pos:pos + LENGTH_FIELD], byteorder="big", signed=False)
        pos += LENGTH_FIELD
        if size > len(buf) - pos:
            raise MalformedKeyError(f"Declared {name} length {size} exceeds the remaining {len(buf) - pos} bytes.")
        parts.append(bytes_to_integer(buf[pos:pos + size]))
        pos += size
    if pos != len(buf):
        raise MalformedKeyError(f"Key buffer has {len(buf) - pos} trailing bytes.")
    return parts[0], parts[1]
