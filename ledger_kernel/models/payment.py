"""
Module: ledger_kernel.models.payment
Responsibility: ORM persistence for payments and the links that apply a
    payment's amount to orders (the order_payments table).
Architecture position: Kernel > Models.  May import from db/ and domain/values.py only.

Invariants enforced:
    - payment_number is UNIQUE; generated numbers can never collide.
    - idempotency_key is UNIQUE when present; a concurrent resubmission
      with the same key fails at INSERT and is recovered as a duplicate.
    - (order_id, payment_id) is UNIQUE in order_payments.
    - Neither payments nor links are ever updated (db/immutability.py);
      they are removed only by PaymentReconciliationService.delete_payment.

Failure modes:
    - IntegrityError on duplicate payment_number, idempotency_key or
      (order_id, payment_id).
    - ImmutabilityViolationError on any ORM UPDATE.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base, CreatedAtMixin, UUIDString
from ledger_kernel.domain.values import PaymentDirection


class Payment(CreatedAtMixin, Base):
    """
    A monetary event: money received (IN) or paid out (OUT).

    Contract:
        Written once by PaymentReconciliationService.create_payment.  The
        unallocated remainder (amount minus linked amounts) is derived on
        read, never stored.
    """

    __tablename__ = "payments"

    __table_args__ = (
        UniqueConstraint("payment_number", name="uq_payment_number"),
        UniqueConstraint("idempotency_key", name="uq_payment_idempotency_key"),
        Index(
            "idx_payment_similarity",
            "company_id",
            "warehouse_id",
            "direction",
            "payment_date",
        ),
        Index("idx_payment_created_at", "created_at"),
    )

    company_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    warehouse_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("warehouses.id"),
        nullable=True,
    )

    direction: Mapped[PaymentDirection] = mapped_column(String(3), nullable=False)

    payment_date: Mapped[date] = mapped_column(Date, nullable=False)

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    payment_mode_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    # Customer for IN, supplier for OUT
    counterparty_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    staff_user_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    idempotency_key: Mapped[str | None] = mapped_column(String(255), nullable=True)

    payment_number: Mapped[str] = mapped_column(String(50), nullable=False)

    def __repr__(self) -> str:
        return f"<Payment {self.payment_number}: {self.direction} {self.amount}>"


class OrderPaymentLink(CreatedAtMixin, Base):
    """Applies ``amount`` of a payment to one order."""

    __tablename__ = "order_payments"

    __table_args__ = (
        UniqueConstraint("order_id", "payment_id", name="uq_order_payment_pair"),
        Index("idx_order_payment_payment", "payment_id"),
    )

    order_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("orders.id"),
        nullable=False,
    )

    payment_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("payments.id"),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    link_date: Mapped[date] = mapped_column(Date, nullable=False)

    remarks: Mapped[str | None] = mapped_column(String(4000), nullable=True)
