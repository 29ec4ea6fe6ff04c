"""OrderSelector: open orders per counterparty and order balances."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from ledger_kernel.domain.dtos import OrderLinkRequest
from ledger_kernel.domain.values import OrderType, PaymentStatus
from ledger_kernel.selectors.order_selector import OrderSelector
from ledger_kernel.services.payment_reconciliation import PaymentReconciliationService


class TestListUnpaidOrders:
    def test_open_orders_only(self, make_order, session, clock, payment_draft, world):
        unpaid = make_order("100", order_date=date(2024, 1, 5))
        partial = make_order("100", order_date=date(2024, 1, 9))
        paid = make_order("100", order_date=date(2024, 1, 7))
        make_order("100", is_deleted=True)
        make_order("100", order_type=OrderType.PURCHASES, counterparty_id=world.customer_id)
        make_order("100", counterparty_id=uuid4())
        service = PaymentReconciliationService(session, clock)
        service.create_payment(
            payment_draft("130"),
            [OrderLinkRequest(partial, Decimal("30")), OrderLinkRequest(paid, Decimal("100"))],
        )

        orders = OrderSelector(session).list_unpaid_orders(world.customer_id, OrderType.SALES)

        assert [o.order_id for o in orders] == [partial, unpaid]
        assert orders[0].payment_status is PaymentStatus.PARTIALLY_PAID
        assert orders[0].due_amount == Decimal("70")
        assert orders[1].order_type is OrderType.SALES

    def test_supplier_orders(self, make_order, session, world):
        order_id = make_order("40", order_type=OrderType.PURCHASES)
        orders = OrderSelector(session).list_unpaid_orders(world.supplier_id, OrderType.PURCHASES)
        assert [o.order_id for o in orders] == [order_id]

    def test_warehouse_filter(self, make_order, session, world):
        make_order("10")
        north = make_order("20", warehouse_id=world.north_id)
        orders = OrderSelector(session).list_unpaid_orders(
            world.customer_id, OrderType.SALES, warehouse_id=world.north_id
        )
        assert [o.order_id for o in orders] == [north]


class TestGetBalance:
    def test_balance(self, make_order, session):
        order_id = make_order("75")
        balance = OrderSelector(session).get_balance(order_id)
        assert balance.total == Decimal("75")
        assert balance.due_amount == Decimal("75")
        assert balance.status is PaymentStatus.UNPAID
        assert balance.is_deletable is True

    def test_missing(self, session):
        assert OrderSelector(session).get_balance(uuid4()) is None
