"""
canonical_json.py — Canonical JSON for signed federation documents

Deterministic JSON canonicalization: one logical JSON value maps to exactly
one byte sequence, whatever library or language produced the input text.

Canonical form:
- UTF-8 encoding
- No insignificant whitespace
- Object members sorted by the raw UTF-8 bytes of their keys
- Array order preserved
- Strings escape only '"', '\\' and control characters below U+0020;
  everything else (including non-ASCII) is written as raw UTF-8
- Integers written as plain digits, limited to +/-(2**53 - 1)
- Other numbers written from their shortest round-trip digits (see
  _encode_number)
- No NaN/Infinity (raises EncodingError)

IMPORTANT: every implementation that signs or verifies these documents MUST
produce identical canonical bytes for identical logical values, or
signatures made by one will not verify in the other.
"""

from __future__ import annotations
import json
import math
from decimal import Decimal
from typing import Any, List, Tuple, Union

from .errors import EncodingError, ParseError
from .json_value import JsonKind, JsonValue, from_python, utf8_key

__all__ = [
    "MAX_SAFE_INTEGER",
    "parse_json",
    "encode_value",
    "canonical_json",
    "canonical_bytes",
    "canonical_dumps",
    "json_equal",
]

MAX_SAFE_INTEGER = 2 ** 53 - 1

JsonInput = Union[bytes, bytearray, memoryview, str]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _reject_constant(token: str) -> Any:
    raise EncodingError(f"non-finite number {token} has no canonical form")


def parse_json(data: JsonInput) -> JsonValue:
    """Parse one JSON text into a value tree.

    Raises:
        ParseError: If ``data`` is not valid UTF-8 or not a single valid
            JSON text.
        EncodingError: If the text uses NaN or Infinity, or an integer
            literal too long to convert.
    """
    if isinstance(data, str):
        text = data
    elif isinstance(data, (bytes, bytearray, memoryview)):
        try:
            text = bytes(data).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(f"input is not valid UTF-8: {exc.reason}") from exc
    else:
        raise TypeError(f"expected bytes or str, got {type(data).__name__}")

    try:
        raw = json.loads(text, object_pairs_hook=dict, parse_constant=_reject_constant)
    except json.JSONDecodeError as exc:
        raise ParseError(f"{exc.msg} at line {exc.lineno} column {exc.colno}") from exc
    except RecursionError as exc:
        raise ParseError("document is nested too deeply") from exc
    except ValueError as exc:
        # int() refuses very long digit strings; such an integer is valid JSON
        # but far outside the canonical range
        raise EncodingError(f"integer literal is too long: {exc}") from exc
    return from_python(raw)


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def _encode_string(s: str) -> str:
    # json.dumps with ensure_ascii=False escapes exactly '"', '\\' and C0
    # controls: \b \f \n \r \t short forms, the rest as lowercase \u00XX.
    return json.dumps(s, ensure_ascii=False)


def _shortest_digits(x: float) -> Tuple[str, int]:
    """Return (digits, adjusted exponent) of the shortest repr of ``x`` > 0."""
    _, digit_tuple, exponent = Decimal(repr(x)).normalize().as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    return digits, len(digits) + exponent - 1


def _exponent_form(digits: str, adjusted: int) -> str:
    mantissa = digits[0]
    if len(digits) > 1:
        mantissa += "." + digits[1:]
    return f"{mantissa}e{'+' if adjusted >= 0 else '-'}{abs(adjusted)}"


def _encode_number(n: Union[int, float]) -> str:
    """Render a number deterministically.

    - int: plain digits, must lie within +/-MAX_SAFE_INTEGER.
    - float with an integral value within that range: plain digits
      (1.0 -> "1", -0.0 -> "0").
    - integral float beyond that range: exponent form (1e300 -> "1e+300"),
      so the output never re-parses as an out-of-range integer.
    - other floats: shortest round-trip digits, plain notation while the
      decimal exponent is >= -7 (0.5, 123.25, 0.0000001), exponent form
      below that (1e-8).
    """
    if isinstance(n, int):
        if not -MAX_SAFE_INTEGER <= n <= MAX_SAFE_INTEGER:
            raise EncodingError(f"integer {n} is outside +/-(2**53 - 1)")
        return str(n)

    if not math.isfinite(n):
        raise EncodingError(f"non-finite number {n!r} has no canonical form")
    if n.is_integer() and abs(n) <= MAX_SAFE_INTEGER:
        return str(int(n))

    sign = "-" if n < 0 else ""
    digits, adjusted = _shortest_digits(abs(n))
    if n.is_integer() or adjusted < -7:
        return sign + _exponent_form(digits, adjusted)
    if adjusted >= 0:
        return sign + digits[:adjusted + 1] + "." + digits[adjusted + 1:]
    return sign + "0." + "0" * (-adjusted - 1) + digits


def encode_value(value: JsonValue) -> bytes:
    """Encode a value tree in canonical form.

    Walks the tree with an explicit stack; pending output tokens are pushed
    as plain strings next to the nodes still to be visited.

    Raises:
        EncodingError: For non-finite or out-of-range numbers and for
            strings that are not valid Unicode (lone surrogates).
    """
    chunks: List[str] = []
    stack: List[Union[str, JsonValue]] = [value]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            chunks.append(item)
            continue

        kind = item.kind
        if kind is JsonKind.OBJECT:
            members = sorted(item.data, key=lambda kv: utf8_key(kv[0]))
            chunks.append("{")
            stack.append("}")
            for index in range(len(members) - 1, -1, -1):
                key, child = members[index]
                stack.append(child)
                stack.append(("," if index else "") + _encode_string(key) + ":")
        elif kind is JsonKind.ARRAY:
            chunks.append("[")
            stack.append("]")
            for index in range(len(item.data) - 1, -1, -1):
                stack.append(item.data[index])
                if index:
                    stack.append(",")
        elif kind is JsonKind.STRING:
            chunks.append(_encode_string(item.data))
        elif kind is JsonKind.NUMBER:
            chunks.append(_encode_number(item.data))
        elif kind is JsonKind.BOOLEAN:
            chunks.append("true" if item.data else "false")
        else:
            chunks.append("null")

    try:
        return "".join(chunks).encode("utf-8")
    except UnicodeEncodeError as exc:
        raise EncodingError(f"string is not valid Unicode: {exc.reason}") from exc


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------

def canonical_json(data: JsonInput) -> bytes:
    """Parse a JSON text and return its canonical UTF-8 bytes."""
    return encode_value(parse_json(data))


def canonical_bytes(obj: Any) -> bytes:
    """Return canonical JSON bytes for a plain Python object."""
    return encode_value(from_python(obj))


def canonical_dumps(obj: Any) -> str:
    """Return canonical JSON text for a plain Python object."""
    return canonical_bytes(obj).decode("utf-8")


def json_equal(a: JsonInput, b: JsonInput) -> bool:
    """True if two JSON texts have the same canonical form."""
    return canonical_json(a) == canonical_json(b)
