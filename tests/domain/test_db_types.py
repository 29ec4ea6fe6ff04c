"""Decimal helpers shared by models and services."""

from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from ledger_kernel.db.types import as_decimal, quantize_ledger


class TestAsDecimal:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (Decimal("1.50"), Decimal("1.50")),
            (3, Decimal("3")),
            ("12.345", Decimal("12.345")),
            (0.1, Decimal("0.1")),
        ],
    )
    def test_converts(self, raw, expected):
        assert as_decimal(raw) == expected

    def test_float_goes_through_str(self):
        assert as_decimal(0.1) + as_decimal(0.2) == Decimal("0.3")

    @pytest.mark.parametrize("raw", ["abc", True, None])
    def test_rejects_non_numeric(self, raw):
        with pytest.raises(ValueError):
            as_decimal(raw)


class TestQuantizeLedger:
    def test_rounds_half_up_to_nine_places(self):
        assert quantize_ledger(Decimal("1.0000000005")) == Decimal("1.000000001")
        assert quantize_ledger(Decimal("1.0000000004")) == Decimal("1.000000000")

    @given(
        st.decimals(
            min_value=Decimal("-1000000"),
            max_value=Decimal("1000000"),
            places=9,
            allow_nan=False,
            allow_infinity=False,
        )
    )
    def test_stored_precision_is_a_fixed_point(self, value):
        assert quantize_ledger(value) == value
