"""OrderStatusProjector: balances recomputed from the payment links."""

from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.dtos import OrderLinkRequest
from ledger_kernel.domain.policies import LedgerPolicies
from ledger_kernel.domain.values import PaymentStatus
from ledger_kernel.exceptions import OrderNotFoundError
from ledger_kernel.models.order import Order
from ledger_kernel.services.order_status_projector import OrderStatusProjector
from ledger_kernel.services.payment_reconciliation import PaymentReconciliationService


@pytest.fixture
def projector(session, clock, policies):
    return OrderStatusProjector(session, clock, policies)


@pytest.fixture
def payments(session, clock, policies):
    return PaymentReconciliationService(session, clock, policies)


class TestProject:
    def test_unlinked_order_is_unpaid(self, make_order, projector):
        order_id = make_order("100")

        balance = projector.project(order_id)

        assert balance.status is PaymentStatus.UNPAID
        assert balance.paid_amount == Decimal("0")
        assert balance.due_amount == Decimal("100")
        assert balance.is_deletable is True

    def test_reflects_links(self, make_order, projector, payments, payment_draft, session):
        order_id = make_order("100")
        payments.create_payment(
            payment_draft("40"), [OrderLinkRequest(order_id, Decimal("40"))]
        )

        balance = projector.project(order_id)

        assert balance.status is PaymentStatus.PARTIALLY_PAID
        assert balance.paid_amount == Decimal("40")
        order = session.get(Order, order_id)
        assert order.due_amount == Decimal("60")
        assert order.is_deletable is False

    def test_idempotent(self, make_order, projector, payments, payment_draft):
        order_id = make_order("100")
        payments.create_payment(
            payment_draft("100"), [OrderLinkRequest(order_id, Decimal("100"))]
        )

        first = projector.project(order_id)
        second = projector.project(order_id)

        assert first == second
        assert second.status is PaymentStatus.PAID

    def test_repairs_drifted_fields(self, make_order, projector, session):
        order_id = make_order("100")
        order = session.get(Order, order_id)
        order.paid_amount = Decimal("55")
        order.payment_status = PaymentStatus.PAID
        session.flush()

        balance = projector.project(order_id)

        assert balance.paid_amount == Decimal("0")
        assert balance.status is PaymentStatus.UNPAID

    def test_custom_tolerance(self, make_order, session, clock, payments, payment_draft):
        order_id = make_order("100")
        payments.create_payment(
            payment_draft("99"), [OrderLinkRequest(order_id, Decimal("99"))]
        )
        lenient = OrderStatusProjector(session, clock, LedgerPolicies(status_tolerance=Decimal("1")))

        assert lenient.project(order_id).status is PaymentStatus.PAID

    def test_logs_transition(self, make_order, projector, captured_logs):
        order_id = make_order("100")
        projector.project(order_id)
        projected = [r for r in captured_logs() if r["message"] == "order_status_projected"]
        assert projected[0]["order_id"] == str(order_id)
        assert projected[0]["status"] == "unpaid"
        assert projected[0]["previous_status"] == "unpaid"


class TestMissingOrders:
    def test_missing_order(self, projector):
        with pytest.raises(OrderNotFoundError):
            projector.project(uuid4())

    def test_soft_deleted_order_skipped(self, make_order, projector, captured_logs):
        order_id = make_order("100", is_deleted=True)

        assert projector.project(order_id) is None
        assert any(
            r["message"] == "order_projection_skipped_deleted" for r in captured_logs()
        )
