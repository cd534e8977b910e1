"""
errors.py — fedsign Error Taxonomy

Every failure raised by the canonical encoder, the signer and the verifier
carries a stable code so callers can tell *why* a document was rejected.
All of them mean the same thing to a caller: the document is not trusted.
"""

from typing import Optional

__all__ = [
    "FedSignError",
    "ParseError",
    "EncodingError",
    "KeyMaterialError",
    "SigningError",
    "MissingSignatureError",
    "MalformedSignatureError",
    "InvalidSignatureError",
]


class FedSignError(Exception):
    """Base class for all fedsign errors."""
    def __init__(
        self,
        code: str,
        message: str,
        context: Optional[str] = None,
    ):
        self.code = code
        self.message = message
        self.context = context

        full_msg = f"[{code}] {message}"
        if context:
            full_msg += f" Context: {context}"

        super().__init__(full_msg)


# Canonical JSON Errors (E1xx)
class ParseError(FedSignError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("FEDSIGN_E100", "Input is not valid JSON, or is not a JSON object where one is required.", context)

class EncodingError(FedSignError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("FEDSIGN_E101", "Value has no canonical JSON representation.", context)

# Key Errors (E2xx)
class KeyMaterialError(FedSignError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("FEDSIGN_E200", "Key identifier or key material is malformed.", context)

class SigningError(FedSignError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("FEDSIGN_E201", "Signing primitive failed to produce a valid signature.", context)

# Signature Errors (E3xx)
class MissingSignatureError(FedSignError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("FEDSIGN_E300", "Document carries no signature for the requested entity and key identifier.", context)

class MalformedSignatureError(FedSignError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("FEDSIGN_E301", "Signature is not a canonical unpadded base64 string of the expected length.", context)

class InvalidSignatureError(FedSignError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("FEDSIGN_E302", "Signature verification failed.", context)
