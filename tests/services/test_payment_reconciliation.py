"""
PaymentReconciliationService: payment creation, order links, deletion.

Every test runs inside one uncommitted session; the TransactionCoordinator
tests cover commit and rollback.
"""

from dataclasses import replace
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from ledger_kernel.domain.dtos import OrderLinkRequest
from ledger_kernel.domain.values import (
    DuplicateReason,
    OrderType,
    PaymentDirection,
    PaymentStatus,
)
from ledger_kernel.exceptions import (
    InvalidAmountError,
    MissingFieldError,
    OrderNotFoundError,
    PaymentNotFoundError,
)
from ledger_kernel.models.order import Order
from ledger_kernel.models.payment import OrderPaymentLink, Payment
from ledger_kernel.services.payment_reconciliation import PaymentReconciliationService


@pytest.fixture
def service(session, clock, policies):
    return PaymentReconciliationService(session, clock, policies)


def _count(session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar_one()


def _link(order_id, amount, remarks=None) -> OrderLinkRequest:
    return OrderLinkRequest(order_id=order_id, amount=Decimal(str(amount)), remarks=remarks)


class TestCreatePayment:
    def test_full_payment_settles_order(self, make_order, service, session, payment_draft):
        order_id = make_order("100")

        result = service.create_payment(payment_draft("100"), [_link(order_id, "100")])

        assert result.is_duplicate is False
        assert result.payment_number == "PAY-IN-MAI-0001"
        assert result.linked_order_ids == (order_id,)
        order = session.get(Order, order_id)
        assert order.paid_amount == Decimal("100")
        assert order.due_amount == Decimal("0")
        assert order.payment_status == PaymentStatus.PAID
        assert order.is_deletable is False

    def test_split_across_orders(self, make_order, service, session, payment_draft):
        first = make_order("60")
        second = make_order("80")

        service.create_payment(payment_draft("100"), [_link(first, "60"), _link(second, "40")])

        assert session.get(Order, first).payment_status == PaymentStatus.PAID
        second_order = session.get(Order, second)
        assert second_order.payment_status == PaymentStatus.PARTIALLY_PAID
        assert second_order.due_amount == Decimal("40")

    def test_payments_accumulate_on_order(self, make_order, service, session, payment_draft, clock):
        order_id = make_order("100")
        service.create_payment(payment_draft("30"), [_link(order_id, "30")])
        clock.advance(1)
        service.create_payment(payment_draft("70"), [_link(order_id, "70")])

        order = session.get(Order, order_id)
        assert order.paid_amount == Decimal("100")
        assert order.payment_status == PaymentStatus.PAID

    def test_sub_cent_remainder_counts_as_paid(self, make_order, service, session, payment_draft):
        order_id = make_order("100.005")

        service.create_payment(payment_draft("100"), [_link(order_id, "100")])

        order = session.get(Order, order_id)
        assert order.payment_status == PaymentStatus.PAID
        assert order.due_amount == Decimal("0.005")

    def test_payment_without_links(self, service, session, payment_draft):
        result = service.create_payment(payment_draft("50"))

        assert result.linked_order_ids == ()
        assert _count(session, Payment) == 1
        assert _count(session, OrderPaymentLink) == 0

    def test_stored_fields(self, make_order, service, session, payment_draft, world, clock):
        order_id = make_order("100")
        staff = uuid4()
        result = service.create_payment(
            payment_draft("25", notes="cash at till", staff_user_id=staff),
            [_link(order_id, "25", remarks="first instalment")],
            idempotency_key="  till-7  ",
        )

        payment = session.get(Payment, result.payment_id)
        assert payment.direction == PaymentDirection.IN
        assert payment.amount == Decimal("25")
        assert payment.notes == "cash at till"
        assert payment.staff_user_id == staff
        assert payment.idempotency_key == "till-7"
        link = session.execute(select(OrderPaymentLink)).scalar_one()
        assert link.remarks == "first instalment"
        assert link.link_date == payment.payment_date

    def test_outgoing_payment_numbering(self, make_order, service, payment_draft, world):
        order_id = make_order("500", order_type=OrderType.PURCHASES)
        result = service.create_payment(
            payment_draft("500", direction=PaymentDirection.OUT, counterparty_id=world.supplier_id),
            [_link(order_id, "500")],
        )
        assert result.payment_number == "PAY-OUT-MAI-0001"


class TestLinkDeduplication:
    def test_repeated_order_in_one_request(self, make_order, service, session, payment_draft):
        order_id = make_order("100")

        result = service.create_payment(
            payment_draft("100"), [_link(order_id, "50"), _link(order_id, "50")]
        )

        assert result.linked_order_ids == (order_id,)
        assert result.skipped_order_ids == (order_id,)
        assert _count(session, OrderPaymentLink) == 1
        assert session.get(Order, order_id).paid_amount == Decimal("50")


class TestDuplicates:
    def test_same_key_returns_existing_payment(self, make_order, service, session, payment_draft):
        order_id = make_order("100")
        first = service.create_payment(
            payment_draft("40"), [_link(order_id, "40")], idempotency_key="abc"
        )

        again = service.create_payment(
            payment_draft("60"), [_link(order_id, "60")], idempotency_key=" abc "
        )

        assert again.is_duplicate is True
        assert again.reason is DuplicateReason.IDEMPOTENCY_KEY
        assert again.payment_id == first.payment_id
        assert again.payment_number == first.payment_number
        assert _count(session, Payment) == 1
        assert session.get(Order, order_id).paid_amount == Decimal("40")

    def test_similar_submission_returns_existing_payment(self, service, session, payment_draft):
        first = service.create_payment(payment_draft("100"))

        again = service.create_payment(payment_draft("100"))

        assert again.is_duplicate is True
        assert again.reason is DuplicateReason.SIMILARITY
        assert again.payment_id == first.payment_id
        assert _count(session, Payment) == 1

    def test_key_collision_at_insert_recovered(self, service, session, payment_draft, monkeypatch):
        first = service.create_payment(payment_draft("100"), idempotency_key="race")
        # Simulate a concurrent winner the guard did not see
        monkeypatch.setattr(service.guard, "find_duplicate", lambda draft, key=None: None)

        again = service.create_payment(payment_draft("75"), idempotency_key="race")

        assert again.is_duplicate is True
        assert again.reason is DuplicateReason.IDEMPOTENCY_KEY
        assert again.payment_id == first.payment_id
        assert _count(session, Payment) == 1


    def test_blank_keys_are_not_stored(self, service, session, payment_draft):
        first = service.create_payment(payment_draft("10"), idempotency_key="   ")
        second = service.create_payment(payment_draft("20"), idempotency_key="  ")

        assert second.is_duplicate is False
        assert second.payment_id != first.payment_id
        assert session.get(Payment, first.payment_id).idempotency_key is None
        assert session.get(Payment, second.payment_id).idempotency_key is None

class TestValidation:
    @pytest.mark.parametrize(
        "field", ["company_id", "warehouse_id", "direction", "payment_date", "amount"]
    )
    def test_missing_field(self, service, session, payment_draft, field):
        with pytest.raises(MissingFieldError) as exc_info:
            service.create_payment(replace(payment_draft(), **{field: None}))
        assert exc_info.value.field_name == field
        assert _count(session, Payment) == 0

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_non_positive_amount(self, service, payment_draft, amount):
        with pytest.raises(InvalidAmountError):
            service.create_payment(payment_draft(amount))

    def test_non_positive_link_amount(self, make_order, service, session, payment_draft):
        order_id = make_order("100")
        with pytest.raises(InvalidAmountError) as exc_info:
            service.create_payment(payment_draft("10"), [_link(order_id, "0")])
        assert exc_info.value.field_name == "order link amount"
        assert _count(session, Payment) == 0

    def test_link_without_order(self, service, payment_draft):
        with pytest.raises(MissingFieldError):
            service.create_payment(payment_draft("10"), [OrderLinkRequest(None, Decimal("10"))])

    def test_unknown_order(self, service, session, payment_draft):
        with pytest.raises(OrderNotFoundError):
            service.create_payment(payment_draft("10"), [_link(uuid4(), "10")])
        assert _count(session, Payment) == 0

    def test_soft_deleted_order(self, make_order, service, session, payment_draft):
        order_id = make_order("100", is_deleted=True)
        with pytest.raises(OrderNotFoundError):
            service.create_payment(payment_draft("10"), [_link(order_id, "10")])
        assert _count(session, Payment) == 0


class TestCreateOrderPayment:
    def test_applies_full_amount(self, make_order, service, session, payment_draft):
        order_id = make_order("80")

        result = service.create_order_payment(payment_draft("80"), order_id, remarks="settle")

        assert result.linked_order_ids == (order_id,)
        assert session.get(Order, order_id).payment_status == PaymentStatus.PAID
        link = session.execute(select(OrderPaymentLink)).scalar_one()
        assert link.amount == Decimal("80")
        assert link.remarks == "settle"

    def test_requires_order(self, service, payment_draft):
        with pytest.raises(MissingFieldError):
            service.create_order_payment(payment_draft("80"), None)


class TestDeletePayment:
    def test_reopens_order(self, make_order, service, session, payment_draft):
        order_id = make_order("100")
        created = service.create_payment(payment_draft("100"), [_link(order_id, "100")])

        deletion = service.delete_payment(created.payment_id)

        assert deletion.payment_number == created.payment_number
        assert deletion.reprojected_order_ids == (order_id,)
        order = session.get(Order, order_id)
        assert order.paid_amount == Decimal("0")
        assert order.due_amount == Decimal("100")
        assert order.payment_status == PaymentStatus.UNPAID
        assert order.is_deletable is True
        assert _count(session, Payment) == 0
        assert _count(session, OrderPaymentLink) == 0

    def test_other_payments_remain_applied(self, make_order, service, session, payment_draft, clock):
        order_id = make_order("100")
        keep = service.create_payment(payment_draft("30"), [_link(order_id, "30")])
        clock.advance(1)
        drop = service.create_payment(payment_draft("50"), [_link(order_id, "50")])

        service.delete_payment(drop.payment_id)

        order = session.get(Order, order_id)
        assert order.paid_amount == Decimal("30")
        assert order.payment_status == PaymentStatus.PARTIALLY_PAID
        assert session.get(Payment, keep.payment_id) is not None

    def test_reprojects_every_linked_order(self, make_order, service, payment_draft):
        first = make_order("60")
        second = make_order("40")
        created = service.create_payment(
            payment_draft("100"), [_link(first, "60"), _link(second, "40")]
        )

        deletion = service.delete_payment(created.payment_id)

        assert deletion.reprojected_order_ids == tuple(sorted((first, second), key=str))

    def test_missing_payment(self, service):
        with pytest.raises(PaymentNotFoundError):
            service.delete_payment(uuid4())
