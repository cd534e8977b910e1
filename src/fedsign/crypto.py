"""
crypto.py — Signature algorithms behind key identifiers

Implements:
  - Key identifier parsing ("<algorithm>:<identifier>", e.g. "ed25519:1")
  - The signing primitive contract used by the signer and verifier
  - Ed25519 (RFC 8032) via ``cryptography``

Dependencies:
  - cryptography >= 41.0 (pip install cryptography)

The signer and verifier depend only on the fixed-length contract of a
``SignatureAlgorithm``: raw key material in, raw signature bytes of
``signature_length`` out. Key material is always supplied by the caller and
never cached here.
"""

from __future__ import annotations
from types import MappingProxyType
from typing import Any, NamedTuple, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    PublicFormat,
)

from .errors import KeyMaterialError

__all__ = [
    "KeyId",
    "SignatureAlgorithm",
    "Ed25519Algorithm",
    "ED25519",
    "ALGORITHMS",
    "parse_key_id",
    "algorithm_for_key_id",
    "public_key_bytes",
]


# ---------------------------------------------------------------------------
# Key identifiers
# ---------------------------------------------------------------------------

class KeyId(NamedTuple):
    algorithm: str
    identifier: str


def parse_key_id(key_id: str) -> KeyId:
    """Split ``"<algorithm>:<identifier>"``.

    Raises:
        KeyMaterialError: If there is no ':' or either part is empty.
    """
    if not isinstance(key_id, str):
        raise KeyMaterialError(f"key identifier must be a string, got {type(key_id).__name__}")
    algorithm, sep, identifier = key_id.partition(":")
    if not sep or not algorithm or not identifier:
        raise KeyMaterialError(f"key identifier {key_id!r} is not of the form <algorithm>:<id>")
    return KeyId(algorithm, identifier)


# ---------------------------------------------------------------------------
# Algorithms
# ---------------------------------------------------------------------------

class SignatureAlgorithm:
    """Fixed-length signing primitive.

    Subclasses set the lengths and implement key loading, ``sign`` and
    ``verify``. ``verify`` returns False on a mismatch; it never raises for
    a well-formed signature that simply does not match.
    """
    name: str = ""
    private_key_length: int = 0
    public_key_length: int = 0
    signature_length: int = 0

    def load_private_key(self, material: Any) -> Any:
        raise NotImplementedError

    def load_public_key(self, material: Any) -> Any:
        raise NotImplementedError

    def sign(self, private_key: Any, message: bytes) -> bytes:
        raise NotImplementedError

    def verify(self, public_key: Any, message: bytes, signature: bytes) -> bool:
        raise NotImplementedError


class Ed25519Algorithm(SignatureAlgorithm):
    name = "ed25519"
    private_key_length = 32
    public_key_length = 32
    signature_length = 64

    def load_private_key(
        self, material: Union[bytes, bytearray, Ed25519PrivateKey]
    ) -> Ed25519PrivateKey:
        """Load a private key.

        Accepts an ``Ed25519PrivateKey``, a 32-byte seed, or the 64-byte
        seed||public-key layout used by NaCl and Go; in the latter the
        public half must belong to the seed.
        """
        if isinstance(material, Ed25519PrivateKey):
            return material
        if not isinstance(material, (bytes, bytearray)):
            raise KeyMaterialError(
                f"ed25519 private key must be bytes, got {type(material).__name__}"
            )
        raw = bytes(material)
        if len(raw) == 2 * self.private_key_length:
            seed, public = raw[:self.private_key_length], raw[self.private_key_length:]
        elif len(raw) == self.private_key_length:
            seed, public = raw, None
        else:
            raise KeyMaterialError(
                f"ed25519 private key must be 32 or 64 bytes, got {len(raw)}"
            )

        key = Ed25519PrivateKey.from_private_bytes(seed)
        if public is not None and public_key_bytes(key.public_key()) != public:
            raise KeyMaterialError("ed25519 private key does not match its public half")
        return key

    def load_public_key(
        self, material: Union[bytes, bytearray, Ed25519PublicKey]
    ) -> Ed25519PublicKey:
        if isinstance(material, Ed25519PublicKey):
            return material
        if not isinstance(material, (bytes, bytearray)):
            raise KeyMaterialError(
                f"ed25519 public key must be bytes, got {type(material).__name__}"
            )
        if len(material) != self.public_key_length:
            raise KeyMaterialError(
                f"ed25519 public key must be 32 bytes, got {len(material)}"
            )
        try:
            return Ed25519PublicKey.from_public_bytes(bytes(material))
        except ValueError as exc:
            raise KeyMaterialError(f"invalid ed25519 public key: {exc}") from exc

    def sign(self, private_key: Ed25519PrivateKey, message: bytes) -> bytes:
        return private_key.sign(message)

    def verify(self, public_key: Ed25519PublicKey, message: bytes, signature: bytes) -> bool:
        try:
            public_key.verify(signature, message)
            return True
        except InvalidSignature:
            return False


def public_key_bytes(public_key: Ed25519PublicKey) -> bytes:
    """Raw 32-byte encoding of an Ed25519 public key."""
    return public_key.public_bytes(Encoding.Raw, PublicFormat.Raw)


ED25519 = Ed25519Algorithm()

ALGORITHMS = MappingProxyType({ED25519.name: ED25519})


def algorithm_for_key_id(key_id: str) -> SignatureAlgorithm:
    """Return the algorithm named by a key identifier's prefix.

    Raises:
        KeyMaterialError: If the key ID is malformed or names an algorithm
            that is not supported.
    """
    parsed = parse_key_id(key_id)
    algorithm = ALGORITHMS.get(parsed.algorithm)
    if algorithm is None:
        raise KeyMaterialError(f"unsupported signing algorithm {parsed.algorithm!r}")
    return algorithm
