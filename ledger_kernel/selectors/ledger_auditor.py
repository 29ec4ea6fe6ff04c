"""
Module: ledger_kernel.selectors.ledger_auditor
Responsibility: Recomputes the two ledger invariants from the append-only
    history and reports every row whose stored, derived value has drifted:

        stock_levels.current_stock  ==  sum(stock_movements.quantity)
        orders.paid_amount          ==  sum(order_payments.amount)
        (and due_amount / payment_status / is_deletable derived from it)

Architecture position: Kernel > Selectors.  Read-only; used by
    scripts/audit_ledger.py and the test suite.

Invariants enforced:
    - Never repairs anything.  A discrepancy is reported, not fixed.

Failure modes:
    - None on a consistent ledger: both methods return empty lists.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import as_decimal, quantize_ledger
from ledger_kernel.domain.order_status import DEFAULT_STATUS_TOLERANCE, derive_payment_status
from ledger_kernel.domain.values import PaymentStatus
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.order import Order
from ledger_kernel.models.payment import OrderPaymentLink
from ledger_kernel.models.stock import StockLevel, StockMovement
from ledger_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.ledger_auditor")


@dataclass(frozen=True)
class StockDiscrepancy:
    product_id: UUID
    warehouse_id: UUID
    stored_stock: Decimal
    ledger_stock: Decimal

    @property
    def difference(self) -> Decimal:
        return self.stored_stock - self.ledger_stock


@dataclass(frozen=True)
class OrderDiscrepancy:
    order_id: UUID
    stored_paid: Decimal
    ledger_paid: Decimal
    stored_due: Decimal
    expected_due: Decimal
    stored_status: PaymentStatus
    expected_status: PaymentStatus
    stored_is_deletable: bool
    expected_is_deletable: bool


class LedgerAuditor(BaseSelector[StockLevel]):
    def __init__(self, session: Session, status_tolerance: Decimal = DEFAULT_STATUS_TOLERANCE):
        super().__init__(session)
        self._tolerance = status_tolerance

    def stock_discrepancies(self) -> list[StockDiscrepancy]:
        movement_sums = (
            select(
                StockMovement.product_id.label("product_id"),
                StockMovement.warehouse_id.label("warehouse_id"),
                func.sum(StockMovement.quantity).label("ledger_stock"),
            )
            .group_by(StockMovement.product_id, StockMovement.warehouse_id)
            .subquery()
        )
        rows = self.session.execute(
            select(
                StockLevel.product_id,
                StockLevel.warehouse_id,
                StockLevel.current_stock,
                movement_sums.c.ledger_stock,
            )
            .outerjoin(
                movement_sums,
                (movement_sums.c.product_id == StockLevel.product_id)
                & (movement_sums.c.warehouse_id == StockLevel.warehouse_id),
            )
            .order_by(StockLevel.product_id, StockLevel.warehouse_id)
        ).all()

        found = []
        for product_id, warehouse_id, stored, ledger in rows:
            stored = quantize_ledger(as_decimal(stored))
            ledger = quantize_ledger(as_decimal(ledger or 0))
            if stored != ledger:
                found.append(
                    StockDiscrepancy(
                        product_id=product_id,
                        warehouse_id=warehouse_id,
                        stored_stock=stored,
                        ledger_stock=ledger,
                    )
                )
        logger.info(
            "stock_audit_completed",
            extra={"levels_checked": len(rows), "discrepancies": len(found)},
        )
        return found

    def order_discrepancies(self) -> list[OrderDiscrepancy]:
        """Compare every live order with the balance its links imply."""
        link_sums = (
            select(
                OrderPaymentLink.order_id.label("order_id"),
                func.sum(OrderPaymentLink.amount).label("ledger_paid"),
            )
            .group_by(OrderPaymentLink.order_id)
            .subquery()
        )
        rows = self.session.execute(
            select(Order, link_sums.c.ledger_paid)
            .outerjoin(link_sums, link_sums.c.order_id == Order.id)
            .where(Order.is_deleted.is_(False))
            .order_by(Order.id)
        ).all()

        found = []
        for order, ledger_paid in rows:
            expected = derive_payment_status(
                total=order.total,
                paid=quantize_ledger(as_decimal(ledger_paid or 0)),
                tolerance=self._tolerance,
            )
            stored_paid = quantize_ledger(as_decimal(order.paid_amount))
            stored_due = quantize_ledger(as_decimal(order.due_amount))
            stored_status = PaymentStatus(order.payment_status)
            if (
                stored_paid != expected.paid_amount
                or stored_due != expected.due_amount
                or stored_status is not expected.status
                or order.is_deletable != expected.is_deletable
            ):
                found.append(
                    OrderDiscrepancy(
                        order_id=order.id,
                        stored_paid=stored_paid,
                        ledger_paid=expected.paid_amount,
                        stored_due=stored_due,
                        expected_due=expected.due_amount,
                        stored_status=stored_status,
                        expected_status=expected.status,
                        stored_is_deletable=order.is_deletable,
                        expected_is_deletable=expected.is_deletable,
                    )
                )
        logger.info(
            "order_audit_completed",
            extra={"orders_checked": len(rows), "discrepancies": len(found)},
        )
        return found
