"""
signature_block.py — The ``signatures`` member of a signed document

Shape on the wire:

    {"<entity>": {"<key_id>": "<unpadded base64 signature>"}}

A document can carry signatures from several entities, and several keys of
one entity (e.g. across a key rotation). Merging a new signature replaces
only the ``(entity, key_id)`` slot it names; everything else is kept
verbatim, including entries this library cannot decode.
"""

from __future__ import annotations
from collections.abc import Mapping
from types import MappingProxyType
from typing import Dict, Iterator, Optional

from .errors import MalformedSignatureError, MissingSignatureError
from .json_value import JsonKind, JsonValue
from .unpadded_base64 import decode_base64, encode_base64

__all__ = [
    "SignatureBlock",
    "merge",
    "encode_signature",
    "decode_signature",
]


def encode_signature(signature: bytes) -> str:
    """Render raw signature bytes as unpadded base64."""
    return encode_base64(signature)


def decode_signature(encoded: str, length: int) -> bytes:
    """Decode a stored signature, requiring exactly ``length`` bytes.

    Raises:
        MalformedSignatureError: On padding, bad characters, non-canonical
            encoding, or a decoded length other than ``length``.
    """
    try:
        signature = decode_base64(encoded)
    except ValueError as exc:
        raise MalformedSignatureError(str(exc)) from exc
    if len(signature) != length:
        raise MalformedSignatureError(
            f"signature decodes to {len(signature)} bytes, expected {length}"
        )
    return signature


class SignatureBlock(Mapping):
    """Immutable mapping of entity -> key_id -> encoded signature."""

    def __init__(self, entries: Optional[Mapping] = None):
        self._entries: Dict[str, Dict[str, str]] = {}
        for entity, signatures in (entries or {}).items():
            if signatures is None:
                continue
            if not isinstance(entity, str) or not isinstance(signatures, Mapping):
                raise MalformedSignatureError(
                    f"signatures for {entity!r} must be an object"
                )
            for key_id, encoded in signatures.items():
                if not isinstance(key_id, str) or not isinstance(encoded, str):
                    raise MalformedSignatureError(
                        f"signature {entity!r}/{key_id!r} must be a string"
                    )
            self._entries[entity] = dict(signatures)

    # -----------------------------------------------------------------------
    # Mapping protocol
    # -----------------------------------------------------------------------

    def __getitem__(self, entity: str) -> Mapping:
        return MappingProxyType(self._entries[entity])

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"SignatureBlock({self._entries!r})"

    # -----------------------------------------------------------------------
    # Construction from documents
    # -----------------------------------------------------------------------

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping]) -> SignatureBlock:
        """Build a block from a plain mapping, another block, or None."""
        if mapping is None:
            return cls()
        if not isinstance(mapping, Mapping):
            raise MalformedSignatureError("signatures must be an object")
        return cls(mapping)

    @classmethod
    def from_value(cls, value: Optional[JsonValue]) -> SignatureBlock:
        """Read the block from a document's ``signatures`` member.

        ``None`` (member absent) and JSON ``null`` give an empty block; a
        ``null`` entity entry is treated as absent too.
        """
        if value is None or value.kind is JsonKind.NULL:
            return cls()
        if value.kind is not JsonKind.OBJECT:
            raise MalformedSignatureError("signatures must be an object")
        entries = {}
        for entity, signatures in value.data:
            if signatures.kind is JsonKind.NULL:
                continue
            if signatures.kind is not JsonKind.OBJECT:
                raise MalformedSignatureError(
                    f"signatures for {entity!r} must be an object"
                )
            by_key = {}
            for key_id, encoded in signatures.data:
                if encoded.kind is not JsonKind.STRING:
                    raise MalformedSignatureError(
                        f"signature {entity!r}/{key_id!r} must be a string"
                    )
                by_key[key_id] = encoded.data
            entries[entity] = by_key
        return cls(entries)

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {entity: dict(sigs) for entity, sigs in self._entries.items()}

    def to_value(self) -> JsonValue:
        return JsonValue.from_members(
            (
                entity,
                JsonValue.from_members(
                    (key_id, JsonValue.string(encoded))
                    for key_id, encoded in sigs.items()
                ),
            )
            for entity, sigs in self._entries.items()
        )

    # -----------------------------------------------------------------------
    # Operations
    # -----------------------------------------------------------------------

    def merge(self, entity: str, key_id: str, signature: bytes) -> SignatureBlock:
        """Return a new block with ``(entity, key_id)`` set to ``signature``."""
        entries = self.to_dict()
        entries.setdefault(entity, {})[key_id] = encode_signature(signature)
        return SignatureBlock(entries)

    def lookup(self, entity: str, key_id: str) -> str:
        """Return the encoded signature stored for ``(entity, key_id)``.

        Raises:
            MissingSignatureError: If the entity or the key ID is absent.
        """
        signatures = self._entries.get(entity)
        if not signatures:
            raise MissingSignatureError(f"no signatures from {entity!r}")
        encoded = signatures.get(key_id)
        if encoded is None:
            raise MissingSignatureError(f"no signature from {entity!r} with key {key_id!r}")
        return encoded

    def signature_bytes(self, entity: str, key_id: str, length: int) -> bytes:
        """Look up and decode a signature of exactly ``length`` bytes."""
        return decode_signature(self.lookup(entity, key_id), length)


def merge(
    existing: Optional[Mapping],
    entity: str,
    key_id: str,
    signature: bytes,
) -> SignatureBlock:
    """Add or replace one signature, preserving every other entry.

    ``existing`` may be a ``SignatureBlock``, a plain
    entity -> key_id -> signature mapping, or None.
    """
    return SignatureBlock.from_mapping(existing).merge(entity, key_id, signature)
