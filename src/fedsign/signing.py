"""
signing.py — Sign and verify JSON documents

A signed document is an ordinary JSON object with two reserved members:

    signatures  {"<entity>": {"<key_id>": "<unpadded base64>"}}
    unsigned    anything; never covered by a signature

The signed bytes are the canonical JSON of the document with both reserved
members removed. Changing ``unsigned`` after signing therefore never breaks
a signature, while changing any other member always does.

Process (signing):
  1. Parse the document; it must be an object.
  2. Set aside ``unsigned`` and the existing ``signatures``.
  3. Canonicalize what remains and sign those bytes.
  4. Merge the new signature into the block under (entity, key_id).
  5. Re-attach ``signatures`` and ``unsigned``.

Verification mirrors it and fails with a distinct error for a missing,
malformed or non-matching signature.
"""

from __future__ import annotations
import logging
from collections.abc import Mapping
from typing import Any, Dict

from .canonical_json import JsonInput, encode_value, parse_json
from .crypto import SignatureAlgorithm, algorithm_for_key_id
from .errors import FedSignError, InvalidSignatureError, ParseError, SigningError
from .json_value import JsonValue, from_python
from .signature_block import SignatureBlock

__all__ = [
    "SIGNATURES_KEY",
    "UNSIGNED_KEY",
    "sign_json",
    "verify_json",
    "sign_document",
    "verify_document",
    "signed_payload",
]

logger = logging.getLogger(__name__)

SIGNATURES_KEY = "signatures"
UNSIGNED_KEY = "unsigned"


def _require_object(document: JsonValue) -> JsonValue:
    if not document.is_object:
        raise ParseError(f"expected a JSON object, got {document.kind.value}")
    return document


def signed_payload(document: JsonValue) -> bytes:
    """Canonical bytes covered by signatures: the document minus
    ``signatures`` and ``unsigned``."""
    return encode_value(_require_object(document).without(SIGNATURES_KEY, UNSIGNED_KEY))


# ---------------------------------------------------------------------------
# Value-tree level
# ---------------------------------------------------------------------------

def _sign_value(
    entity_name: str,
    key_id: str,
    private_key: Any,
    document: JsonValue,
) -> JsonValue:
    _require_object(document)
    algorithm = algorithm_for_key_id(key_id)
    signing_key = algorithm.load_private_key(private_key)

    unsigned = document.get(UNSIGNED_KEY)
    block = SignatureBlock.from_value(document.get(SIGNATURES_KEY))

    content = document.without(SIGNATURES_KEY, UNSIGNED_KEY)
    payload = encode_value(content)
    signature = algorithm.sign(signing_key, payload)
    if len(signature) != algorithm.signature_length:
        raise SigningError(
            f"{algorithm.name} produced {len(signature)} bytes, expected {algorithm.signature_length}"
        )
    logger.debug(
        "signed %d canonical bytes for %s with %s", len(payload), entity_name, key_id
    )

    signed = content.with_member(SIGNATURES_KEY, block.merge(entity_name, key_id, signature).to_value())
    if unsigned is not None:
        signed = signed.with_member(UNSIGNED_KEY, unsigned)
    return signed


def _verify_value(
    entity_name: str,
    key_id: str,
    public_key: Any,
    document: JsonValue,
) -> None:
    _require_object(document)
    algorithm: SignatureAlgorithm = algorithm_for_key_id(key_id)
    verify_key = algorithm.load_public_key(public_key)

    try:
        block = SignatureBlock.from_value(document.get(SIGNATURES_KEY))
        signature = block.signature_bytes(entity_name, key_id, algorithm.signature_length)
        payload = signed_payload(document)
        if not algorithm.verify(verify_key, payload, signature):
            raise InvalidSignatureError(f"signature from {entity_name!r} with key {key_id!r} does not match")
    except FedSignError as err:
        logger.debug("rejected document for %s/%s: %s", entity_name, key_id, err.code)
        raise
    logger.debug(
        "verified %d canonical bytes for %s with %s", len(payload), entity_name, key_id
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def sign_json(
    entity_name: str,
    key_id: str,
    private_key: Any,
    data: JsonInput,
) -> bytes:
    """Sign a JSON document and return the signed document as bytes.

    Args:
        entity_name: Name of the signing party (e.g. a server name).
        key_id: ``"<algorithm>:<identifier>"``, e.g. ``"ed25519:1"``.
        private_key: Key material accepted by the algorithm's
            ``load_private_key`` (for ed25519: 32-byte seed, 64-byte
            seed||public key, or ``Ed25519PrivateKey``).
        data: JSON text of an object.

    Returns:
        bytes: Canonical JSON of the document with the signature merged into
        ``signatures``; ``unsigned`` is carried over unchanged.

    Raises:
        ParseError: If ``data`` is not a JSON object.
        EncodingError: If the document has no canonical form.
        KeyMaterialError: If ``key_id`` or ``private_key`` is malformed.
        MalformedSignatureError: If the existing ``signatures`` member is
            not shaped entity -> key_id -> string.
    """
    return encode_value(_sign_value(entity_name, key_id, private_key, parse_json(data)))


def verify_json(
    entity_name: str,
    key_id: str,
    public_key: Any,
    data: JsonInput,
) -> None:
    """Check the signature of ``entity_name``/``key_id`` on a JSON document.

    Returns None when the signature is valid.

    Raises:
        ParseError: If ``data`` is not a JSON object.
        KeyMaterialError: If ``key_id`` or ``public_key`` is malformed.
        MissingSignatureError: If there is no such signature.
        MalformedSignatureError: If the stored signature is padded, not
            canonical base64, or of the wrong length.
        InvalidSignatureError: If the signature does not match.
    """
    _verify_value(entity_name, key_id, public_key, parse_json(data))


def sign_document(
    entity_name: str,
    key_id: str,
    private_key: Any,
    document: Mapping,
) -> Dict[str, Any]:
    """Like :func:`sign_json`, for an already-parsed mapping.

    The input mapping is not modified; a new dict is returned.
    """
    if not isinstance(document, Mapping):
        raise ParseError(f"expected a mapping, got {type(document).__name__}")
    return _sign_value(entity_name, key_id, private_key, from_python(document)).to_python()


def verify_document(
    entity_name: str,
    key_id: str,
    public_key: Any,
    document: Mapping,
) -> None:
    """Like :func:`verify_json`, for an already-parsed mapping."""
    if not isinstance(document, Mapping):
        raise ParseError(f"expected a mapping, got {type(document).__name__}")
    _verify_value(entity_name, key_id, public_key, from_python(document))
