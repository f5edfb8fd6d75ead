"""Type coercion table: raw text to typed field values.

Every function in this module is a **pure** transformation — no I/O,
no side effects.  Parsing follows strict base-10 rules: no surrounding
whitespace, no digit separators, and integer widths are range-checked.
"""

from __future__ import annotations

import math
import re
import struct
from collections.abc import Callable

from protocall.core.models import FieldKind, FieldSchema
from protocall.exceptions import CoercionError, UnsupportedKindError

ScalarValue = float | int | bool | str | bytes

_SIGNED_RE = re.compile(r"[+-]?[0-9]+")
_UNSIGNED_RE = re.compile(r"[0-9]+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)

_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class _ParseError(ValueError):
    """Internal signal carrying a human-readable reason."""


# ---------------------------------------------------------------------------
# Primitive parsers
# ---------------------------------------------------------------------------

def _parse_signed(raw: str, bits: int) -> int:
    if not _SIGNED_RE.fullmatch(raw):
        raise _ParseError("invalid syntax")
    value = int(raw, 10)
    low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    if not low <= value <= high:
        raise _ParseError(f"value out of range for {bits}-bit signed integer")
    return value


def _parse_unsigned(raw: str, bits: int) -> int:
    if not _UNSIGNED_RE.fullmatch(raw):
        raise _ParseError("invalid syntax")
    value = int(raw, 10)
    if value >= 1 << bits:
        raise _ParseError(f"value out of range for {bits}-bit unsigned integer")
    return value


def _parse_double(raw: str) -> float:
    if not _FLOAT_RE.fullmatch(raw):
        raise _ParseError("invalid syntax")
    value = float(raw)
    if math.isinf(value) and "inf" not in raw.lower():
        raise _ParseError("value out of range")
    return value


def _parse_float(raw: str) -> float:
    # Parse at full width first, then narrow to 32-bit precision.
    wide = _parse_double(raw)
    try:
        (narrow,) = struct.unpack("<f", struct.pack("<f", wide))
    except OverflowError as exc:
        raise _ParseError("value out of range for 32-bit float") from exc
    return float(narrow)


def _parse_sfixed32(raw: str) -> int:
    # Parsed as a 64-bit unsigned value, then truncated to signed 32 bits.
    value = _parse_unsigned(raw, 64) & 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def _parse_bool(raw: str) -> bool:
    if raw in _TRUE_WORDS:
        return True
    if raw in _FALSE_WORDS:
        return False
    raise _ParseError("invalid syntax")


# ---------------------------------------------------------------------------
# Dispatch table
# ---------------------------------------------------------------------------

_TABLE: dict[FieldKind, Callable[[str], ScalarValue]] = {
    FieldKind.DOUBLE: _parse_double,
    FieldKind.FLOAT: _parse_float,
    FieldKind.INT32: lambda raw: _parse_signed(raw, 32),
    FieldKind.INT64: lambda raw: _parse_signed(raw, 64),
    FieldKind.SINT32: lambda raw: _parse_signed(raw, 32),
    FieldKind.SINT64: lambda raw: _parse_signed(raw, 64),
    FieldKind.UINT32: lambda raw: _parse_unsigned(raw, 32),
    FieldKind.UINT64: lambda raw: _parse_unsigned(raw, 64),
    FieldKind.FIXED32: lambda raw: _parse_unsigned(raw, 32),
    FieldKind.FIXED64: lambda raw: _parse_unsigned(raw, 64),
    FieldKind.SFIXED32: _parse_sfixed32,
    FieldKind.SFIXED64: lambda raw: _parse_unsigned(raw, 64),
    FieldKind.BOOL: _parse_bool,
    FieldKind.STRING: lambda raw: raw,
    FieldKind.BYTES: lambda raw: raw.encode("utf-8"),
}

SCALAR_KINDS: frozenset[FieldKind] = frozenset(_TABLE)
"""Kinds handled directly by :func:`coerce_scalar`."""


def coerce_scalar(kind: FieldKind, raw: str, *, field_name: str = "") -> ScalarValue:
    """Convert *raw* text to the typed value for *kind*.

    Raises
    ------
    UnsupportedKindError
        If *kind* is not a scalar kind (messages never pass through here).
    CoercionError
        If *raw* is not valid for *kind*.
    """
    parser = _TABLE.get(kind)
    if parser is None:
        raise UnsupportedKindError(kind, field_name=field_name or None)
    try:
        return parser(raw)
    except _ParseError as exc:
        raise CoercionError(field_name, kind, raw, reason=str(exc)) from exc


def coerce(field: FieldSchema, raw: str) -> ScalarValue:
    """Coerce *raw* for *field*, mapping enum value names to numbers."""
    if field.kind is FieldKind.ENUM:
        if field.enum is None:
            raise CoercionError(field.name, field.kind, raw, reason="no enumeration attached")
        value = field.enum.value_named(raw)
        if value is None:
            raise CoercionError(
                field.name,
                field.kind,
                raw,
                reason=f"not a value of {field.enum.full_name}",
            )
        return value.number
    return coerce_scalar(field.kind, raw, field_name=field.name)
