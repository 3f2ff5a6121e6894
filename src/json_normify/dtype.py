"""Tagged value model for cells produced by the normalizer."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from typing import Any

from json_normify.errors import ConversionError, InputShapeError, ObjectTypeError

_UINT_MAX = 2**64 - 1
_INT_MIN = -(2**63)


class Kind(enum.Enum):
    """The tag of a :class:`Value`, also used by resolved schemas."""

    NULL = "null"
    BOOL = "bool"
    UINT = "uint"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    ARRAY = "array"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Value:
    """One immutable JSON scalar or array.

    ``data`` holds the Python payload for the tag: ``None`` for null, a
    ``bool``/``int``/``float``/``str`` for scalars and a tuple of
    :class:`Value` for arrays.
    """

    kind: Kind
    data: Any = None

    # ── construction ────────────────────────────────────────────────────────

    @classmethod
    def from_json(cls, node: Any, max_depth: int | None = None) -> Value:
        """Convert one node produced by :func:`json.loads` into a Value.

        - Strings, booleans and ``None`` map onto their own tags
        - Integers become ``UINT`` when non-negative, ``INT`` when negative,
          and ``FLOAT`` when they do not fit in 64 bits
        - Arrays convert element-wise; ``[]`` becomes ``[null]``
        - Objects raise :class:`ObjectTypeError`

        When *max_depth* is given, each array level uses one unit of it and
        nesting past the budget raises :class:`InputShapeError`.
        """
        if node is None:
            return NULL
        # bool first: it is a subclass of int
        if isinstance(node, bool):
            return cls(Kind.BOOL, node)
        if isinstance(node, str):
            return cls(Kind.STRING, node)
        if isinstance(node, int):
            if 0 <= node <= _UINT_MAX:
                return cls(Kind.UINT, node)
            if _INT_MIN <= node < 0:
                return cls(Kind.INT, node)
            return cls(Kind.FLOAT, float(node))
        if isinstance(node, float):
            return cls(Kind.FLOAT, node)
        if isinstance(node, (list, tuple)):
            if max_depth is not None:
                if max_depth < 1:
                    raise InputShapeError("Array nesting exceeds the allowed depth")
                max_depth -= 1
            if not node:
                return cls(Kind.ARRAY, (NULL,))
            return cls(Kind.ARRAY, tuple(cls.from_json(item, max_depth) for item in node))
        if isinstance(node, dict):
            raise ObjectTypeError("Cannot convert an object node into a Value")
        raise InputShapeError(f"Unsupported JSON node type: {type(node).__name__}")

    @classmethod
    def string(cls, text: str) -> Value:
        return cls(Kind.STRING, text)

    # ── predicates ──────────────────────────────────────────────────────────

    def is_null(self) -> bool:
        return self.kind is Kind.NULL

    def is_bool(self) -> bool:
        return self.kind is Kind.BOOL

    def is_uint(self) -> bool:
        return self.kind is Kind.UINT

    def is_int(self) -> bool:
        return self.kind is Kind.INT

    def is_float(self) -> bool:
        return self.kind is Kind.FLOAT

    def is_string(self) -> bool:
        return self.kind is Kind.STRING

    def is_array(self) -> bool:
        return self.kind is Kind.ARRAY

    # ── conversion ──────────────────────────────────────────────────────────

    def convert_to(self, kind: Kind) -> Any:
        """Return the payload if this value is tagged *kind*, else raise."""
        if self.kind is not kind:
            raise ConversionError(f"Cannot convert {self.kind} value to {kind}")
        return self.data

    def to_python(self) -> Any:
        """Return the plain Python equivalent (arrays become lists)."""
        if self.kind is Kind.ARRAY:
            return [item.to_python() for item in self.data]
        return self.data

    def render(self) -> str:
        """Return the canonical string form used by string fallback."""
        if self.kind is Kind.STRING:
            return self.data
        if self.kind is Kind.NULL:
            return "null"
        if self.kind is Kind.BOOL:
            return "true" if self.data else "false"
        if self.kind in (Kind.UINT, Kind.INT):
            return str(self.data)
        if self.kind is Kind.FLOAT:
            return repr(self.data)
        return json.dumps(self.to_python(), ensure_ascii=False)

    def __str__(self) -> str:
        return self.render()


NULL = Value(Kind.NULL)
