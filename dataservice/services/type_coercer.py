"""Strict and lenient runtime type coercion.

Converts untyped input (query-string text, XML attribute values, values
already typed by a caller) into one of a closed set of coercion targets.
Each target has exactly one hand-written text parser; conversions from
already-typed values go through an explicit (source type, target) table.

Two modes share one rule set:

    coerce_strict(value, target)            raises on failure
    coerce_lenient(value, target, fallback) returns fallback on failure

Example:
    coerce_strict("1", CoercionTarget.BOOLEAN)          # True
    coerce_lenient("hello", CoercionTarget.INT32, -1)   # -1
    coerce_strict(None, CoercionTarget.INT32, nullable=True)  # None
"""

import re
import uuid
from collections.abc import Callable
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, TypeVar

from dataservice.errors import ConversionError, NullInputError

T = TypeVar("T")

_INTEGER_RE = re.compile(r"^[+-]?\d+$")


class CoercionTarget(str, Enum):
    """Closed set of value types a declared SQL type can coerce to."""

    INT64 = "int64"
    INT32 = "int32"
    INT16 = "int16"
    BYTE = "byte"
    BOOLEAN = "boolean"
    TEXT = "text"
    DATETIME = "datetime"
    DATETIMEOFFSET = "datetimeoffset"
    TIME = "time"
    DECIMAL = "decimal"
    FLOAT64 = "float64"
    FLOAT32 = "float32"
    UUID = "uuid"


# Inclusive value ranges for the integer targets
_INTEGER_RANGES: dict[CoercionTarget, tuple[int, int]] = {
    CoercionTarget.INT64: (-(2**63), 2**63 - 1),
    CoercionTarget.INT32: (-(2**31), 2**31 - 1),
    CoercionTarget.INT16: (-(2**15), 2**15 - 1),
    CoercionTarget.BYTE: (0, 255),
}

# Python runtime type that already satisfies each target
_PYTHON_TYPES: dict[CoercionTarget, type] = {
    CoercionTarget.INT64: int,
    CoercionTarget.INT32: int,
    CoercionTarget.INT16: int,
    CoercionTarget.BYTE: int,
    CoercionTarget.BOOLEAN: bool,
    CoercionTarget.TEXT: str,
    CoercionTarget.DATETIME: datetime,
    CoercionTarget.DATETIMEOFFSET: datetime,
    CoercionTarget.TIME: time,
    CoercionTarget.DECIMAL: Decimal,
    CoercionTarget.FLOAT64: float,
    CoercionTarget.FLOAT32: float,
    CoercionTarget.UUID: uuid.UUID,
}


class _NoConversion(Exception):
    """Internal signal: no conversion path exists for the value."""


def _target_name(target: CoercionTarget | type[Enum]) -> str:
    if isinstance(target, CoercionTarget):
        return target.value
    return target.__name__


def _is_reference_like(target: CoercionTarget | type[Enum]) -> bool:
    """Text targets accept None the way a reference type does."""
    return target is CoercionTarget.TEXT


def _check_range(value: int, target: CoercionTarget) -> int:
    low, high = _INTEGER_RANGES[target]
    if not low <= value <= high:
        raise ValueError(f"{value} is outside the range of {target.value}")
    return value


def _satisfies(value: Any, target: CoercionTarget | type[Enum]) -> bool:
    """Return True when value can be returned unchanged for target."""
    if not isinstance(target, CoercionTarget):
        return isinstance(value, target)
    if target in _INTEGER_RANGES:
        if isinstance(value, bool) or not isinstance(value, int):
            return False
        low, high = _INTEGER_RANGES[target]
        return low <= value <= high
    if target is CoercionTarget.DATETIMEOFFSET:
        return isinstance(value, datetime) and value.tzinfo is not None
    if target in (CoercionTarget.FLOAT64, CoercionTarget.FLOAT32):
        return isinstance(value, float)
    return isinstance(value, _PYTHON_TYPES[target])


# --- Text parsers (one per target) -------------------------------------------


def _parse_integer(text: str, target: CoercionTarget) -> int:
    stripped = text.strip()
    if not _INTEGER_RE.match(stripped):
        raise ValueError(f"{text!r} is not an integer")
    return _check_range(int(stripped), target)


def _parse_boolean(text: str) -> bool:
    token = text.strip().lower()
    if token == "1":
        return True
    if token == "0":
        return False
    if token == "true":
        return True
    if token == "false":
        return False
    raise ValueError(f"{text!r} is not a valid boolean")


def _parse_datetime(text: str) -> datetime:
    return datetime.fromisoformat(text.strip())


def _parse_datetimeoffset(text: str) -> datetime:
    parsed = datetime.fromisoformat(text.strip())
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_decimal(text: str) -> Decimal:
    try:
        parsed = Decimal(text.strip())
    except InvalidOperation as e:
        raise ValueError(f"{text!r} is not a decimal") from e
    if not parsed.is_finite():
        raise ValueError(f"{text!r} is not a finite decimal")
    return parsed


def _parse_float(text: str) -> float:
    return float(text.strip())


_TEXT_PARSERS: dict[CoercionTarget, Callable[[str], Any]] = {
    CoercionTarget.INT64: lambda s: _parse_integer(s, CoercionTarget.INT64),
    CoercionTarget.INT32: lambda s: _parse_integer(s, CoercionTarget.INT32),
    CoercionTarget.INT16: lambda s: _parse_integer(s, CoercionTarget.INT16),
    CoercionTarget.BYTE: lambda s: _parse_integer(s, CoercionTarget.BYTE),
    CoercionTarget.BOOLEAN: _parse_boolean,
    CoercionTarget.TEXT: lambda s: s,
    CoercionTarget.DATETIME: _parse_datetime,
    CoercionTarget.DATETIMEOFFSET: _parse_datetimeoffset,
    CoercionTarget.TIME: lambda s: time.fromisoformat(s.strip()),
    CoercionTarget.DECIMAL: _parse_decimal,
    CoercionTarget.FLOAT64: _parse_float,
    CoercionTarget.FLOAT32: _parse_float,
    CoercionTarget.UUID: lambda s: uuid.UUID(s.strip()),
}


# --- Typed conversions -------------------------------------------------------

_INTEGER_TARGETS = frozenset(_INTEGER_RANGES)

# Narrowing pairs always fail, even when the value would survive the trip.
_NARROWING: frozenset[tuple[type, CoercionTarget]] = frozenset(
    {(float, t) for t in _INTEGER_TARGETS}
    | {(Decimal, t) for t in _INTEGER_TARGETS}
    | {(datetime, CoercionTarget.TIME)}
)


def _from_datetime_to_offset(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


_TYPED_CONVERSIONS: dict[tuple[type, CoercionTarget], Callable[[Any], Any]] = {
    (int, CoercionTarget.INT64): lambda v: _check_range(v, CoercionTarget.INT64),
    (int, CoercionTarget.INT32): lambda v: _check_range(v, CoercionTarget.INT32),
    (int, CoercionTarget.INT16): lambda v: _check_range(v, CoercionTarget.INT16),
    (int, CoercionTarget.BYTE): lambda v: _check_range(v, CoercionTarget.BYTE),
    (int, CoercionTarget.FLOAT64): float,
    (int, CoercionTarget.FLOAT32): float,
    (int, CoercionTarget.DECIMAL): Decimal,
    (float, CoercionTarget.DECIMAL): lambda v: Decimal(str(v)),
    (Decimal, CoercionTarget.FLOAT64): float,
    (Decimal, CoercionTarget.FLOAT32): float,
    (datetime, CoercionTarget.DATETIMEOFFSET): _from_datetime_to_offset,
    (date, CoercionTarget.DATETIME): lambda v: datetime(v.year, v.month, v.day),
    (bytes, CoercionTarget.UUID): lambda v: uuid.UUID(bytes=v),
}


def _source_type(value: Any) -> type:
    """Collapse a value's runtime type onto the keys of the conversion tables."""
    if isinstance(value, bool):
        return bool
    for candidate in (datetime, date, int, float, Decimal, bytes):
        if isinstance(value, candidate):
            return candidate
    return type(value)


def _text_form(value: Any) -> str:
    """Invariant textual form of a value."""
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.name
    return str(value)


def _convert_enum(value: Any, enum_type: type[Enum]) -> Enum:
    """Resolve an enum member by name (case-insensitive) or by value."""
    text = _text_form(value).strip()
    for member in enum_type:
        if member.name.lower() == text.lower():
            return member
    for member in enum_type:
        if str(member.value).lower() == text.lower():
            return member
    raise ValueError(f"{text!r} is not a member of {enum_type.__name__}")


def _convert(value: Any, target: CoercionTarget | type[Enum]) -> Any:
    """Apply the typed table, then the text parser. Raises on failure."""
    if not isinstance(target, CoercionTarget):
        return _convert_enum(value, target)

    source = _source_type(value)
    if (source, target) in _NARROWING:
        raise _NoConversion(f"narrowing {source.__name__} to {target.value}")

    converter = _TYPED_CONVERSIONS.get((source, target))
    if converter is not None:
        return converter(value)

    if target is CoercionTarget.TEXT:
        return _text_form(value)

    parser = _TEXT_PARSERS[target]
    return parser(_text_form(value))


def _coerce(
    value: Any,
    target: CoercionTarget | type[Enum],
    fallback: Any,
    nullable: bool,
    strict: bool,
) -> Any:
    nullable = nullable or _is_reference_like(target)

    if value is None:
        if strict and not nullable:
            raise NullInputError(_target_name(target))
        return fallback

    if _satisfies(value, target):
        return value

    if nullable and _text_form(value) == "":
        return fallback

    try:
        return _convert(value, target)
    except (_NoConversion, ValueError, TypeError, OverflowError) as e:
        if not strict:
            return fallback
        raise ConversionError(
            value=value,
            source=type(value).__name__,
            target=_target_name(target),
        ) from e


def coerce_strict(
    value: Any,
    target: CoercionTarget | type[Enum],
    *,
    nullable: bool = False,
) -> Any:
    """Convert value to target, raising when that is impossible.

    Args:
        value: Untyped input. None means absent.
        target: Coercion target or an Enum class.
        nullable: Whether the target accepts an empty value. Text targets
            are always nullable.

    Returns:
        The converted value, or None for an absent/empty nullable input.

    Raises:
        NullInputError: value is None and the target is not nullable.
        ConversionError: no conversion path exists or parsing failed.
    """
    return _coerce(value, target, None, nullable, strict=True)


def coerce_lenient(
    value: Any,
    target: CoercionTarget | type[Enum],
    fallback: T,
    *,
    nullable: bool = False,
) -> Any | T:
    """Convert value to target, returning fallback on any failure.

    Never raises. An absent input, an empty text form for a nullable
    target, or any failed conversion all produce fallback.
    """
    return _coerce(value, target, fallback, nullable, strict=False)
