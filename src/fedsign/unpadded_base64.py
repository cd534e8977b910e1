"""
unpadded_base64.py — Standard-alphabet base64 without '=' padding

Signatures and keys travel as base64 with the trailing padding removed.
Decoding refuses padded input outright: a padded value means the producer
did not follow the signing convention.
"""

from __future__ import annotations
import base64
import binascii
import re

__all__ = ["encode_base64", "decode_base64"]

_ALPHABET = re.compile(r"[A-Za-z0-9+/]*")


def encode_base64(data: bytes) -> str:
    """Encode bytes as unpadded standard base64."""
    return base64.b64encode(data).decode("ascii").rstrip("=")


def decode_base64(text: str, canonical: bool = True) -> bytes:
    """Decode unpadded standard base64.

    With ``canonical`` (the default) the unused low bits of the final
    character must be zero, so each byte string has exactly one accepted
    encoding. Pass ``canonical=False`` for key material produced by tools
    that leave those bits set.

    Raises:
        ValueError: On padding, characters outside the standard alphabet,
            an impossible length, or (canonical mode) non-zero trailing bits.
    """
    if not isinstance(text, str):
        raise ValueError(f"expected a base64 string, got {type(text).__name__}")
    if "=" in text:
        raise ValueError("base64 padding is not permitted")
    if not _ALPHABET.fullmatch(text):
        raise ValueError("invalid character in base64 string")
    if len(text) % 4 == 1:
        raise ValueError(f"invalid unpadded base64 length {len(text)}")

    try:
        data = base64.b64decode(text + "=" * (-len(text) % 4), validate=True)
    except binascii.Error as exc:
        raise ValueError(f"invalid base64: {exc}") from exc

    if canonical and encode_base64(data) != text:
        raise ValueError("base64 string has non-zero trailing bits")
    return data
