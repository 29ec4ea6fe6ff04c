"""
Module: ledger_kernel.selectors.order_selector
Responsibility: Read-only order balance queries: orders still awaiting
    payment for a customer or supplier, and the stored balance of one order.
Architecture position: Kernel > Selectors.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import OrderBalance
from ledger_kernel.domain.values import OrderType, PaymentStatus
from ledger_kernel.models.order import Order
from ledger_kernel.selectors.base import BaseSelector

OPEN_STATUSES = (PaymentStatus.UNPAID, PaymentStatus.PARTIALLY_PAID)


@dataclass(frozen=True)
class UnpaidOrder:
    order_id: UUID
    invoice_number: str | None
    order_type: OrderType
    order_date: date
    warehouse_id: UUID | None
    total: Decimal
    paid_amount: Decimal
    due_amount: Decimal
    payment_status: PaymentStatus


class OrderSelector(BaseSelector[Order]):
    def __init__(self, session: Session):
        super().__init__(session)

    def list_unpaid_orders(
        self,
        counterparty_id: UUID,
        order_type: OrderType,
        warehouse_id: UUID | None = None,
    ) -> list[UnpaidOrder]:
        """Unpaid and partially paid orders of one counterparty, newest first."""
        stmt = select(Order).where(
            Order.counterparty_id == counterparty_id,
            Order.order_type == order_type,
            Order.payment_status.in_(OPEN_STATUSES),
            Order.is_deleted.is_(False),
        )
        if warehouse_id is not None:
            stmt = stmt.where(Order.warehouse_id == warehouse_id)
        stmt = stmt.order_by(Order.order_date.desc(), Order.id)

        return [
            UnpaidOrder(
                order_id=order.id,
                invoice_number=order.invoice_number,
                order_type=OrderType(order.order_type),
                order_date=order.order_date,
                warehouse_id=order.warehouse_id,
                total=order.total,
                paid_amount=order.paid_amount,
                due_amount=order.due_amount,
                payment_status=PaymentStatus(order.payment_status),
            )
            for order in self.session.execute(stmt).scalars()
        ]

    def get_balance(self, order_id: UUID) -> OrderBalance | None:
        order = self.session.get(Order, order_id)
        if order is None:
            return None
        return OrderBalance(
            order_id=order.id,
            total=order.total,
            paid_amount=order.paid_amount,
            due_amount=order.due_amount,
            status=PaymentStatus(order.payment_status),
            is_deletable=order.is_deletable,
        )
