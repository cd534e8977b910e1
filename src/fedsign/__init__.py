"""fedsign public API.

Canonical JSON and multi-party signatures for JSON documents exchanged
between federated servers.

Example:
    from fedsign import sign_json, verify_json

    signed = sign_json("example.org", "ed25519:1", seed, b'{"hello":"world"}')
    verify_json("example.org", "ed25519:1", public_key, signed)
"""

from .canonical_json import (
    canonical_json,
    canonical_bytes,
    canonical_dumps,
    encode_value,
    json_equal,
    parse_json,
)
from .crypto import (
    ALGORITHMS,
    ED25519,
    Ed25519Algorithm,
    KeyId,
    SignatureAlgorithm,
    algorithm_for_key_id,
    parse_key_id,
)
from .errors import (
    FedSignError,
    ParseError,
    EncodingError,
    KeyMaterialError,
    SigningError,
    MissingSignatureError,
    MalformedSignatureError,
    InvalidSignatureError,
)
from .json_value import JsonKind, JsonValue, from_python
from .signature_block import SignatureBlock, merge
from .signing import sign_json, verify_json, sign_document, verify_document
from .unpadded_base64 import encode_base64, decode_base64

__version__ = "0.1.0"

__all__ = [
    # Canonical JSON
    "canonical_json",
    "canonical_bytes",
    "canonical_dumps",
    "encode_value",
    "json_equal",
    "parse_json",
    "JsonKind",
    "JsonValue",
    "from_python",
    # Signing
    "sign_json",
    "verify_json",
    "sign_document",
    "verify_document",
    "SignatureBlock",
    "merge",
    "encode_base64",
    "decode_base64",
    # Algorithms
    "ALGORITHMS",
    "ED25519",
    "Ed25519Algorithm",
    "KeyId",
    "SignatureAlgorithm",
    "algorithm_for_key_id",
    "parse_key_id",
    # Errors
    "FedSignError",
    "ParseError",
    "EncodingError",
    "KeyMaterialError",
    "SigningError",
    "MissingSignatureError",
    "MalformedSignatureError",
    "InvalidSignatureError",
]
