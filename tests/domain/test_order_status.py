"""Order payment status derivation (pure)."""

from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from ledger_kernel.domain.order_status import DEFAULT_STATUS_TOLERANCE, derive_payment_status
from ledger_kernel.domain.values import PaymentStatus

amounts = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("1000000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)


class TestDerivePaymentStatus:
    def test_unpaid_order(self):
        result = derive_payment_status(Decimal("100"), Decimal("0"))
        assert result.status is PaymentStatus.UNPAID
        assert result.due_amount == Decimal("100")
        assert result.is_deletable is True

    def test_partially_paid_order(self):
        result = derive_payment_status(Decimal("100"), Decimal("40"))
        assert result.status is PaymentStatus.PARTIALLY_PAID
        assert result.paid_amount == Decimal("40")
        assert result.due_amount == Decimal("60")
        assert result.is_deletable is False

    def test_fully_paid_order(self):
        result = derive_payment_status(Decimal("100"), Decimal("100"))
        assert result.status is PaymentStatus.PAID
        assert result.due_amount == Decimal("0")
        assert result.is_deletable is False

    def test_due_within_tolerance_is_paid(self):
        result = derive_payment_status(Decimal("100.005"), Decimal("100"))
        assert result.due_amount == Decimal("0.005")
        assert result.status is PaymentStatus.PAID

    def test_due_exactly_at_tolerance_is_paid(self):
        result = derive_payment_status(Decimal("100.01"), Decimal("100"))
        assert result.status is PaymentStatus.PAID

    def test_due_just_above_tolerance_is_partial(self):
        result = derive_payment_status(Decimal("100.02"), Decimal("100"))
        assert result.status is PaymentStatus.PARTIALLY_PAID

    def test_overpaid_order_is_paid_with_negative_due(self):
        result = derive_payment_status(Decimal("100"), Decimal("120"))
        assert result.status is PaymentStatus.PAID
        assert result.due_amount == Decimal("-20")

    def test_zero_total_order_is_paid(self):
        """The paid check runs first, so an order with nothing due is PAID."""
        result = derive_payment_status(Decimal("0"), Decimal("0"))
        assert result.status is PaymentStatus.PAID
        assert result.is_deletable is False

    @pytest.mark.parametrize("tolerance", [Decimal("0"), Decimal("0.5"), Decimal("5")])
    def test_custom_tolerance(self, tolerance):
        result = derive_payment_status(Decimal("100"), Decimal("100") - tolerance, tolerance)
        assert result.status is PaymentStatus.PAID

    @given(total=amounts, paid=amounts)
    def test_due_is_total_minus_paid(self, total, paid):
        result = derive_payment_status(total, paid)
        assert result.paid_amount == paid
        assert result.due_amount == total - paid

    @given(total=amounts, paid=amounts)
    def test_status_bands(self, total, paid):
        result = derive_payment_status(total, paid)
        due = total - paid
        if due <= DEFAULT_STATUS_TOLERANCE:
            assert result.status is PaymentStatus.PAID
        elif paid <= 0:
            assert result.status is PaymentStatus.UNPAID
        else:
            assert result.status is PaymentStatus.PARTIALLY_PAID

    @given(total=amounts, paid=amounts)
    def test_deletable_iff_unpaid(self, total, paid):
        result = derive_payment_status(total, paid)
        assert result.is_deletable == (result.status is PaymentStatus.UNPAID)
