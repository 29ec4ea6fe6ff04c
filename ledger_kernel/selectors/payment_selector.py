"""
Module: ledger_kernel.selectors.payment_selector
Responsibility: Read-only payment queries: filtered, paginated lists,
    incoming/outgoing totals, and a single payment with the orders it was
    applied to.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Read-only.
    - Lists are ordered by payment_date desc, then created_at desc.
    - unallocated_amount == amount - sum of link amounts for the payment.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Select, case, false, func, or_, select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import as_decimal
from ledger_kernel.domain.values import PaymentDirection, PaymentStatus
from ledger_kernel.models.order import Order
from ledger_kernel.models.payment import OrderPaymentLink, Payment
from ledger_kernel.selectors.base import DEFAULT_PAGE_SIZE, BaseSelector, Page


@dataclass(frozen=True)
class PaymentFilter:
    """
    Criteria for payment lists and totals.

    ``customer_id`` implies direction IN and ``supplier_id`` implies OUT
    unless ``direction`` is given.  ``payment_mode_ids`` of None means no
    filter; an empty tuple matches nothing.
    """

    company_id: UUID | None = None
    direction: PaymentDirection | None = None
    warehouse_id: UUID | None = None
    customer_id: UUID | None = None
    supplier_id: UUID | None = None
    date_from: date | None = None
    date_to: date | None = None
    payment_mode_ids: tuple[UUID, ...] | None = None
    order_id: UUID | None = None
    search: str | None = None


@dataclass(frozen=True)
class PaymentSummary:
    id: UUID
    payment_number: str
    direction: PaymentDirection
    payment_date: date
    amount: Decimal
    company_id: UUID
    warehouse_id: UUID | None
    payment_mode_id: UUID | None
    counterparty_id: UUID | None
    notes: str | None
    created_at: datetime


@dataclass(frozen=True)
class PaymentTotals:
    total_incoming: Decimal
    total_outgoing: Decimal
    count: int

    @property
    def net(self) -> Decimal:
        return self.total_incoming - self.total_outgoing


@dataclass(frozen=True)
class LinkedOrder:
    """One order a payment was applied to."""

    order_id: UUID
    invoice_number: str | None
    applied_amount: Decimal
    link_date: date
    remarks: str | None
    order_total: Decimal
    paid_amount: Decimal
    due_amount: Decimal
    payment_status: PaymentStatus


@dataclass(frozen=True)
class PaymentDetail:
    payment: PaymentSummary
    staff_user_id: UUID | None
    idempotency_key: str | None
    linked_orders: list[LinkedOrder] = field(default_factory=list)

    @property
    def allocated_amount(self) -> Decimal:
        return sum((o.applied_amount for o in self.linked_orders), Decimal("0"))

    @property
    def unallocated_amount(self) -> Decimal:
        return self.payment.amount - self.allocated_amount


def _summary(payment: Payment) -> PaymentSummary:
    return PaymentSummary(
        id=payment.id,
        payment_number=payment.payment_number,
        direction=PaymentDirection(payment.direction),
        payment_date=payment.payment_date,
        amount=payment.amount,
        company_id=payment.company_id,
        warehouse_id=payment.warehouse_id,
        payment_mode_id=payment.payment_mode_id,
        counterparty_id=payment.counterparty_id,
        notes=payment.notes,
        created_at=payment.created_at,
    )


class PaymentSelector(BaseSelector[Payment]):
    def __init__(self, session: Session):
        super().__init__(session)

    def _apply_filter(self, stmt: Select, criteria: PaymentFilter) -> Select:
        direction = criteria.direction
        if criteria.customer_id is not None:
            stmt = stmt.where(Payment.counterparty_id == criteria.customer_id)
            direction = direction or PaymentDirection.IN
        if criteria.supplier_id is not None:
            stmt = stmt.where(Payment.counterparty_id == criteria.supplier_id)
            direction = direction or PaymentDirection.OUT
        if direction is not None:
            stmt = stmt.where(Payment.direction == direction)
        if criteria.company_id is not None:
            stmt = stmt.where(Payment.company_id == criteria.company_id)
        if criteria.warehouse_id is not None:
            stmt = stmt.where(Payment.warehouse_id == criteria.warehouse_id)
        if criteria.date_from is not None:
            stmt = stmt.where(Payment.payment_date >= criteria.date_from)
        if criteria.date_to is not None:
            stmt = stmt.where(Payment.payment_date <= criteria.date_to)
        if criteria.payment_mode_ids is not None:
            if not criteria.payment_mode_ids:
                stmt = stmt.where(false())
            else:
                stmt = stmt.where(Payment.payment_mode_id.in_(criteria.payment_mode_ids))
        if criteria.order_id is not None:
            stmt = stmt.where(
                Payment.id.in_(
                    select(OrderPaymentLink.payment_id)
                    .where(OrderPaymentLink.order_id == criteria.order_id)
                )
            )
        if criteria.search:
            pattern = f"%{criteria.search.strip()}%"
            stmt = stmt.where(
                or_(
                    Payment.payment_number.ilike(pattern),
                    Payment.notes.ilike(pattern),
                )
            )
        return stmt

    def list_payments(
        self,
        criteria: PaymentFilter | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Page[PaymentSummary]:
        stmt = self._apply_filter(select(Payment), criteria or PaymentFilter()).order_by(
            Payment.payment_date.desc(),
            Payment.created_at.desc(),
            Payment.id,
        )
        rows, page, limit, total = self._paginate(stmt, page, limit)
        return Page(
            items=[_summary(row[0]) for row in rows],
            page=page,
            limit=limit,
            total=total,
        )

    def totals(self, criteria: PaymentFilter | None = None) -> PaymentTotals:
        """Sum of incoming and outgoing amounts over the filtered payments."""
        incoming = func.sum(
            case((Payment.direction == PaymentDirection.IN, Payment.amount), else_=0)
        )
        outgoing = func.sum(
            case((Payment.direction == PaymentDirection.OUT, Payment.amount), else_=0)
        )
        stmt = self._apply_filter(
            select(incoming, outgoing, func.count(Payment.id)),
            criteria or PaymentFilter(),
        )
        total_in, total_out, count = self.session.execute(stmt).one()
        return PaymentTotals(
            total_incoming=as_decimal(total_in or 0),
            total_outgoing=as_decimal(total_out or 0),
            count=count,
        )

    def get_payment(self, payment_id: UUID) -> PaymentDetail | None:
        payment = self.session.get(Payment, payment_id)
        if payment is None:
            return None

        rows = self.session.execute(
            select(OrderPaymentLink, Order)
            .join(Order, Order.id == OrderPaymentLink.order_id)
            .where(OrderPaymentLink.payment_id == payment_id)
            .order_by(OrderPaymentLink.created_at, OrderPaymentLink.id)
        ).all()
        linked = [
            LinkedOrder(
                order_id=order.id,
                invoice_number=order.invoice_number,
                applied_amount=link.amount,
                link_date=link.link_date,
                remarks=link.remarks,
                order_total=order.total,
                paid_amount=order.paid_amount,
                due_amount=order.due_amount,
                payment_status=PaymentStatus(order.payment_status),
            )
            for link, order in rows
        ]
        return PaymentDetail(
            payment=_summary(payment),
            staff_user_id=payment.staff_user_id,
            idempotency_key=payment.idempotency_key,
            linked_orders=linked,
        )
