"""
OrderStatusProjector -- recomputes an order's payment balance.

Responsibility:
    Derives paid_amount, due_amount, payment_status and is_deletable for one
    order from the sum of its order_payments rows and writes them back in a
    single update.  Projection is idempotent: running it twice yields the
    same fields.

Architecture position:
    Kernel > Services.  Called by PaymentReconciliationService after every
    link insert or payment deletion, once per distinct affected order.

Invariants enforced:
    - paid_amount == sum of link amounts (never accumulated incrementally).
    - Status rule lives in domain/order_status.py.

Failure modes:
    - OrderNotFoundError if the order does not exist.
    - A soft-deleted order is skipped with a warning and None is returned.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import as_decimal, quantize_ledger
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import OrderBalance
from ledger_kernel.domain.order_status import derive_payment_status
from ledger_kernel.domain.policies import LedgerPolicies
from ledger_kernel.domain.values import PaymentStatus
from ledger_kernel.exceptions import OrderNotFoundError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.order import Order
from ledger_kernel.models.payment import OrderPaymentLink
from ledger_kernel.services.base import BaseService

logger = get_logger("services.order_status")


class OrderStatusProjector(BaseService):
    def __init__(
        self,
        session: Session,
        clock: Clock,
        policies: LedgerPolicies | None = None,
    ):
        super().__init__(session)
        self._clock = clock
        self._policies = policies or LedgerPolicies()

    def lock_order(self, order_id: UUID) -> Order:
        """Load an order with a row lock, or raise OrderNotFoundError."""
        order = self.session.execute(
            select(Order)
            .where(Order.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(str(order_id))
        return order

    def project(self, order_id: UUID) -> OrderBalance | None:
        """
        Recompute and persist the order's balance fields.

        Returns:
            The new balance, or None if the order is soft-deleted.
        """
        order = self.lock_order(order_id)
        if order.is_deleted:
            logger.warning(
                "order_projection_skipped_deleted",
                extra={"order_id": str(order_id)},
            )
            return None

        paid = self.session.execute(
            select(func.sum(OrderPaymentLink.amount))
            .where(OrderPaymentLink.order_id == order_id)
        ).scalar_one() or Decimal("0")

        derived = derive_payment_status(
            total=order.total,
            paid=quantize_ledger(as_decimal(paid)),
            tolerance=self._policies.status_tolerance,
        )

        previous_status = order.payment_status
        order.paid_amount = derived.paid_amount
        order.due_amount = derived.due_amount
        order.payment_status = derived.status
        order.is_deletable = derived.is_deletable
        order.updated_at = self._clock.now_utc()
        self.session.flush()

        logger.info(
            "order_status_projected",
            extra={
                "order_id": str(order_id),
                "paid_amount": derived.paid_amount,
                "due_amount": derived.due_amount,
                "status": derived.status.value,
                "previous_status": PaymentStatus(previous_status).value,
            },
        )
        return OrderBalance(
            order_id=order.id,
            total=order.total,
            paid_amount=derived.paid_amount,
            due_amount=derived.due_amount,
            status=PaymentStatus(derived.status),
            is_deletable=derived.is_deletable,
        )
