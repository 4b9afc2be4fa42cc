"""Tests for strict and lenient type coercion."""

import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal

import pytest

from dataservice.errors import ConversionError, NullInputError
from dataservice.models import CommandKind, ParameterDirection
from dataservice.services.type_coercer import (
    CoercionTarget,
    coerce_lenient,
    coerce_strict,
)

NON_NULLABLE_TARGETS = [t for t in CoercionTarget if t is not CoercionTarget.TEXT]


class TestNullInput:
    """Absent input handling for nullable and non-nullable targets."""

    @pytest.mark.parametrize("target", NON_NULLABLE_TARGETS)
    def test_strict_null_to_non_nullable_raises(self, target):
        """None for a non-nullable target fails in strict mode."""
        with pytest.raises(NullInputError) as exc_info:
            coerce_strict(None, target)
        assert exc_info.value.code == "E-1001"
        assert target.value in exc_info.value.message

    @pytest.mark.parametrize("target", NON_NULLABLE_TARGETS)
    def test_lenient_null_returns_fallback(self, target):
        sentinel = object()
        assert coerce_lenient(None, target, sentinel) is sentinel

    @pytest.mark.parametrize("target", list(CoercionTarget))
    def test_strict_null_to_nullable_returns_none(self, target):
        """Nullable targets accept None without raising."""
        assert coerce_strict(None, target, nullable=True) is None

    def test_text_is_always_nullable(self):
        assert coerce_strict(None, CoercionTarget.TEXT) is None

    def test_empty_text_for_nullable_returns_fallback(self):
        assert coerce_lenient("", CoercionTarget.INT32, 7, nullable=True) == 7
        assert coerce_strict("", CoercionTarget.INT32, nullable=True) is None

    def test_empty_text_for_non_nullable_fails(self):
        with pytest.raises(ConversionError):
            coerce_strict("", CoercionTarget.INT32)


class TestBooleanCoercion:
    """Boolean literal parsing."""

    @pytest.mark.parametrize(
        "text,expected",
        [("1", True), ("0", False), ("True", True), ("false", False), (" TRUE ", True)],
    )
    def test_literals(self, text, expected):
        assert coerce_strict(text, CoercionTarget.BOOLEAN) is expected

    def test_unknown_literal_raises(self):
        with pytest.raises(ConversionError) as exc_info:
            coerce_strict("perhaps", CoercionTarget.BOOLEAN)
        assert exc_info.value.code == "E-1002"
        assert "perhaps" in exc_info.value.message

    def test_unknown_literal_lenient(self):
        assert coerce_lenient("yes", CoercionTarget.BOOLEAN, False) is False

    def test_bool_passes_through(self):
        assert coerce_strict(True, CoercionTarget.BOOLEAN) is True


class TestIntegerCoercion:
    """Integer parsing, ranges and narrowing."""

    def test_lenient_bad_text_returns_fallback(self):
        assert coerce_lenient("hello", CoercionTarget.INT32, -1) == -1

    def test_lenient_good_text(self):
        assert coerce_lenient("100", CoercionTarget.INT32, -1) == 100

    def test_int64_from_text(self):
        value = coerce_strict("42", CoercionTarget.INT64)
        assert value == 42
        assert type(value) is int

    def test_signed_and_padded(self):
        assert coerce_strict(" -17 ", CoercionTarget.INT16) == -17
        assert coerce_strict("+5", CoercionTarget.INT32) == 5

    @pytest.mark.parametrize(
        "text,target",
        [
            ("32768", CoercionTarget.INT16),
            ("2147483648", CoercionTarget.INT32),
            ("256", CoercionTarget.BYTE),
            ("-1", CoercionTarget.BYTE),
        ],
    )
    def test_out_of_range_text_fails(self, text, target):
        with pytest.raises(ConversionError):
            coerce_strict(text, target)

    def test_decimal_text_is_not_an_integer(self):
        with pytest.raises(ConversionError):
            coerce_strict("1.0", CoercionTarget.INT32)

    def test_int_in_range_passes_through(self):
        assert coerce_strict(200, CoercionTarget.BYTE) == 200

    def test_int_out_of_range_fails(self):
        with pytest.raises(ConversionError):
            coerce_strict(70000, CoercionTarget.INT16)

    def test_bool_is_not_an_integer(self):
        with pytest.raises(ConversionError):
            coerce_strict(True, CoercionTarget.INT32)

    @pytest.mark.parametrize("value", [3.0, Decimal("3")])
    def test_narrowing_always_fails(self, value):
        """Exact float/decimal to integer conversions are still rejected."""
        with pytest.raises(ConversionError):
            coerce_strict(value, CoercionTarget.INT32)
        assert coerce_lenient(value, CoercionTarget.INT64, 0) == 0


class TestWideningAndOtherTargets:
    """Typed conversions and text parsers for non-integer targets."""

    def test_int_widens_to_float(self):
        value = coerce_strict(3, CoercionTarget.FLOAT64)
        assert value == 3.0
        assert isinstance(value, float)

    def test_int_widens_to_decimal(self):
        assert coerce_strict(3, CoercionTarget.DECIMAL) == Decimal(3)

    def test_float_to_decimal_uses_shortest_repr(self):
        assert coerce_strict(0.1, CoercionTarget.DECIMAL) == Decimal("0.1")

    def test_decimal_text(self):
        assert coerce_strict("12.50", CoercionTarget.DECIMAL) == Decimal("12.50")

    @pytest.mark.parametrize("text", ["NaN", "Infinity", "abc"])
    def test_decimal_rejects_non_finite(self, text):
        with pytest.raises(ConversionError):
            coerce_strict(text, CoercionTarget.DECIMAL)

    def test_datetime_text(self):
        assert coerce_strict("2024-03-01T10:15:00", CoercionTarget.DATETIME) == datetime(
            2024, 3, 1, 10, 15
        )

    def test_date_widens_to_datetime(self):
        assert coerce_strict(date(2024, 3, 1), CoercionTarget.DATETIME) == datetime(2024, 3, 1)

    def test_datetimeoffset_assumes_utc(self):
        value = coerce_strict("2024-03-01T10:15:00", CoercionTarget.DATETIMEOFFSET)
        assert value.tzinfo == timezone.utc

    def test_datetimeoffset_keeps_offset(self):
        value = coerce_strict("2024-03-01T10:15:00+02:00", CoercionTarget.DATETIMEOFFSET)
        assert value.utcoffset().total_seconds() == 7200

    def test_datetime_does_not_narrow_to_time(self):
        with pytest.raises(ConversionError):
            coerce_strict(datetime(2024, 1, 1, 12, 0), CoercionTarget.TIME)

    def test_time_text(self):
        assert coerce_strict("08:30:00", CoercionTarget.TIME) == time(8, 30)

    def test_uuid_text(self):
        raw = "12345678-1234-5678-1234-567812345678"
        assert coerce_strict(raw, CoercionTarget.UUID) == uuid.UUID(raw)

    def test_satisfying_value_is_returned_unchanged(self):
        value = uuid.uuid4()
        assert coerce_strict(value, CoercionTarget.UUID) is value

    def test_text_target_uses_invariant_form(self):
        assert coerce_strict(False, CoercionTarget.TEXT) == "False"
        assert coerce_strict(12, CoercionTarget.TEXT) == "12"
        assert coerce_strict(date(2024, 1, 2), CoercionTarget.TEXT) == "2024-01-02"


class TestEnumCoercion:
    """Enum targets match member names or values case-insensitively."""

    def test_by_value(self):
        assert coerce_strict("StoredProcedure", CommandKind) is CommandKind.STORED_PROCEDURE

    def test_by_name_any_case(self):
        assert coerce_strict("input_output", ParameterDirection) is ParameterDirection.INPUT_OUTPUT
        assert coerce_strict("returnvalue", ParameterDirection) is ParameterDirection.RETURN_VALUE

    def test_unknown_member_lenient(self):
        assert coerce_lenient("Sideways", ParameterDirection, None) is None

    def test_unknown_member_strict(self):
        with pytest.raises(ConversionError):
            coerce_strict("Sideways", ParameterDirection)
