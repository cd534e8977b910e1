"""
json_value.py — Immutable JSON value tree

A parsed JSON document is held as a closed tagged variant: every node is a
``JsonValue`` whose ``kind`` is one of the six JSON kinds. Nodes are frozen,
so a tree can be shared by any number of concurrent readers, and every
"modification" (``without``, ``with_member``) returns a new node.

Object members are stored sorted by the UTF-8 bytes of their keys. Two
objects that differ only in member order therefore compare equal, and the
canonical encoder never sees an ordering that depends on how the document
was written.

Conversion to and from plain Python objects walks an explicit work stack
instead of recursing, so the depth of a document is bounded by memory, not
by the interpreter's recursion limit.
"""

from __future__ import annotations
import enum
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple, Union

from .errors import EncodingError

__all__ = [
    "JsonKind",
    "JsonValue",
    "NULL",
    "TRUE",
    "FALSE",
    "from_python",
    "utf8_key",
]


class JsonKind(enum.Enum):
    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


def utf8_key(key: str) -> bytes:
    """Ordering key for object members: the raw UTF-8 bytes of the name.

    Lone surrogates are let through here so that ordering never fails; the
    encoder rejects them when it produces output.
    """
    return key.encode("utf-8", "surrogatepass")


@dataclass(frozen=True)
class JsonValue:
    """One node of a JSON value tree.

    ``data`` depends on ``kind``:
      NULL     -> None
      BOOLEAN  -> bool
      NUMBER   -> int or float (never bool)
      STRING   -> str
      ARRAY    -> tuple of JsonValue
      OBJECT   -> tuple of (str, JsonValue) pairs, unique keys, sorted by utf8_key
    """
    kind: JsonKind
    data: Any = None

    # -----------------------------------------------------------------------
    # Constructors
    # -----------------------------------------------------------------------

    @classmethod
    def boolean(cls, flag: bool) -> JsonValue:
        return TRUE if flag else FALSE

    @classmethod
    def number(cls, n: Union[int, float]) -> JsonValue:
        if isinstance(n, bool) or not isinstance(n, (int, float)):
            raise EncodingError(f"not a JSON number: {n!r}")
        return cls(JsonKind.NUMBER, int(n) if isinstance(n, int) else float(n))

    @classmethod
    def string(cls, s: str) -> JsonValue:
        if not isinstance(s, str):
            raise EncodingError(f"not a JSON string: {s!r}")
        return cls(JsonKind.STRING, s)

    @classmethod
    def from_items(cls, items: Iterable[JsonValue]) -> JsonValue:
        """Build an array node from already-built children."""
        return cls(JsonKind.ARRAY, tuple(items))

    @classmethod
    def from_members(cls, members: Iterable[Tuple[str, JsonValue]]) -> JsonValue:
        """Build an object node. A repeated key keeps its last value."""
        merged = {}
        for key, value in members:
            if not isinstance(key, str):
                raise EncodingError(
                    f"object keys must be strings, got {type(key).__name__}"
                )
            merged[key] = value
        ordered = sorted(merged.items(), key=lambda kv: utf8_key(kv[0]))
        return cls(JsonKind.OBJECT, tuple(ordered))

    # -----------------------------------------------------------------------
    # Object access
    # -----------------------------------------------------------------------

    @property
    def is_object(self) -> bool:
        return self.kind is JsonKind.OBJECT

    def _require_object(self) -> None:
        if self.kind is not JsonKind.OBJECT:
            raise TypeError(f"expected a JSON object, got {self.kind.value}")

    def keys(self) -> List[str]:
        self._require_object()
        return [key for key, _ in self.data]

    def get(self, key: str) -> Optional[JsonValue]:
        """Return the member named ``key``, or None when it is absent.

        A member holding JSON ``null`` is returned as ``NULL``, not None.
        """
        self._require_object()
        for name, value in self.data:
            if name == key:
                return value
        return None

    def without(self, *keys: str) -> JsonValue:
        """Return a copy of this object with the named members removed."""
        self._require_object()
        return JsonValue(
            JsonKind.OBJECT,
            tuple(member for member in self.data if member[0] not in keys),
        )

    def with_member(self, key: str, value: JsonValue) -> JsonValue:
        """Return a copy of this object with ``key`` added or replaced."""
        self._require_object()
        return JsonValue.from_members(self.data + ((key, value),))

    # -----------------------------------------------------------------------
    # Conversion
    # -----------------------------------------------------------------------

    def to_python(self) -> Any:
        """Convert to plain dict/list/str/int/float/bool/None."""
        results: List[Any] = []
        work: List[Tuple[str, Any]] = [(_VISIT, self)]
        while work:
            action, item = work.pop()
            if action is _VISIT:
                if item.kind is JsonKind.ARRAY:
                    work.append((_BUILD_ARRAY, len(item.data)))
                    for child in reversed(item.data):
                        work.append((_VISIT, child))
                elif item.kind is JsonKind.OBJECT:
                    work.append((_BUILD_OBJECT, [key for key, _ in item.data]))
                    for _, child in reversed(item.data):
                        work.append((_VISIT, child))
                else:
                    results.append(item.data)
            elif action is _BUILD_ARRAY:
                results.append(_take(results, item))
            else:
                results.append(dict(zip(item, _take(results, len(item)))))
        return results[0]


NULL = JsonValue(JsonKind.NULL)
TRUE = JsonValue(JsonKind.BOOLEAN, True)
FALSE = JsonValue(JsonKind.BOOLEAN, False)

_VISIT = "visit"
_BUILD_ARRAY = "array"
_BUILD_OBJECT = "object"


def _take(results: List[Any], count: int) -> List[Any]:
    """Pop the last ``count`` results, preserving their order."""
    if count == 0:
        return []
    taken = results[-count:]
    del results[-count:]
    return taken


def _scalar(item: Any) -> JsonValue:
    if item is None:
        return NULL
    if isinstance(item, bool):
        return JsonValue.boolean(item)
    if isinstance(item, (int, float)):
        return JsonValue.number(item)
    if isinstance(item, str):
        return JsonValue.string(item)
    raise EncodingError(f"unsupported type for JSON: {type(item).__name__}")


def from_python(obj: Any) -> JsonValue:
    """Build a value tree from plain Python objects.

    Accepts Mappings with str keys, lists, tuples, str, int, float, bool and
    None. Existing JsonValue nodes are adopted as-is. A container that
    contains itself raises EncodingError.
    """
    if isinstance(obj, JsonValue):
        return obj

    results: List[JsonValue] = []
    active = set()
    work: List[Tuple[str, Any]] = [(_VISIT, obj)]
    while work:
        action, item = work.pop()
        if action is _VISIT:
            if isinstance(item, JsonValue):
                results.append(item)
            elif isinstance(item, Mapping):
                if id(item) in active:
                    raise EncodingError("circular reference in object")
                active.add(id(item))
                keys = list(item.keys())
                for key in keys:
                    if not isinstance(key, str):
                        raise EncodingError(
                            f"object keys must be strings, got {type(key).__name__}"
                        )
                work.append((_BUILD_OBJECT, (item, keys)))
                for key in reversed(keys):
                    work.append((_VISIT, item[key]))
            elif isinstance(item, (list, tuple)):
                if id(item) in active:
                    raise EncodingError("circular reference in array")
                active.add(id(item))
                work.append((_BUILD_ARRAY, item))
                for child in reversed(item):
                    work.append((_VISIT, child))
            else:
                results.append(_scalar(item))
        elif action is _BUILD_ARRAY:
            active.discard(id(item))
            results.append(JsonValue.from_items(_take(results, len(item))))
        else:
            source, keys = item
            active.discard(id(source))
            results.append(JsonValue.from_members(zip(keys, _take(results, len(keys)))))
    return results[0]
