"""
Module: ledger_kernel.models.order
Responsibility: ORM persistence for the order aggregate's payment fields.
    Orders are created and edited by the order CRUD layer; the ledger only
    owns paid_amount, due_amount, payment_status and is_deletable, which
    OrderStatusProjector recomputes from order_payments.
Architecture position: Kernel > Models.  May import from db/ and domain/values.py only.

Invariants enforced:
    - paid_amount == sum of order_payments.amount for the order.
    - due_amount == total - paid_amount.
    - payment_status follows the tolerance band in domain/order_status.py.
    - is_deletable iff payment_status == unpaid.
    All four hold after every committed ledger operation that touches the
    order; LedgerAuditor reports any drift.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base, UUIDString
from ledger_kernel.domain.values import OrderType, PaymentStatus


class Order(Base):
    """A sales or purchase order (or a return)."""

    __tablename__ = "orders"

    __table_args__ = (
        Index("idx_order_counterparty", "counterparty_id", "order_type"),
        Index("idx_order_status", "payment_status"),
    )

    company_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    warehouse_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    # Customer for sales, supplier for purchases
    counterparty_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    order_type: Mapped[OrderType] = mapped_column(String(20), nullable=False)

    invoice_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    order_date: Mapped[date] = mapped_column(Date, nullable=False)

    total: Mapped[Decimal] = mapped_column(nullable=False)

    paid_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    due_amount: Mapped[Decimal] = mapped_column(nullable=False)

    payment_status: Mapped[PaymentStatus] = mapped_column(
        String(20),
        default=PaymentStatus.UNPAID,
        nullable=False,
    )

    is_deletable: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Soft delete flag owned by the CRUD layer
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<Order {self.invoice_number or self.id}: "
            f"{self.paid_amount}/{self.total} {self.payment_status}>"
        )
