"""
Request and response models for the HTTP boundary.

Request fields the kernel validates (required ids, amounts, enum values)
are optional here so that a missing or malformed value surfaces as the
kernel's typed error rather than a framework one.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ledger_kernel.domain.values import (
    AdjustmentDirection,
    DuplicateReason,
    MovementKind,
    OrderType,
    PaymentDirection,
    PaymentStatus,
    ReferenceType,
)

T = TypeVar("T")


class _FromAttributes(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class PageOut(BaseModel, Generic[T]):
    items: list[T]
    page: int
    limit: int
    total: int
    pages: int


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------


class OrderLinkIn(BaseModel):
    order_id: UUID | None = None
    amount: Decimal | None = None
    remarks: str | None = None


class PaymentFieldsIn(BaseModel):
    company_id: UUID | None = None
    warehouse_id: UUID | None = None
    direction: str | None = None
    payment_date: date | None = None
    amount: Decimal | None = None
    payment_mode_id: UUID | None = None
    counterparty_id: UUID | None = None
    notes: str | None = None
    staff_user_id: UUID | None = None
    idempotency_key: str | None = None


class PaymentCreateIn(PaymentFieldsIn):
    orders: list[OrderLinkIn] = Field(default_factory=list)


class OrderPaymentIn(PaymentFieldsIn):
    order_id: UUID | None = None
    remarks: str | None = None


class PaymentResultOut(_FromAttributes):
    payment_id: UUID
    payment_number: str
    is_duplicate: bool
    reason: DuplicateReason | None = None
    linked_order_ids: list[UUID] = Field(default_factory=list)
    skipped_order_ids: list[UUID] = Field(default_factory=list)


class PaymentDeletionOut(_FromAttributes):
    payment_id: UUID
    payment_number: str
    reprojected_order_ids: list[UUID]


class PaymentSummaryOut(_FromAttributes):
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


class LinkedOrderOut(_FromAttributes):
    order_id: UUID
    invoice_number: str | None
    applied_amount: Decimal
    link_date: date
    remarks: str | None
    order_total: Decimal
    paid_amount: Decimal
    due_amount: Decimal
    payment_status: PaymentStatus


class PaymentDetailOut(_FromAttributes):
    payment: PaymentSummaryOut
    staff_user_id: UUID | None
    linked_orders: list[LinkedOrderOut]
    allocated_amount: Decimal
    unallocated_amount: Decimal


class PaymentTotalsOut(_FromAttributes):
    total_incoming: Decimal
    total_outgoing: Decimal
    net: Decimal
    count: int


class UnpaidOrderOut(_FromAttributes):
    order_id: UUID
    invoice_number: str | None
    order_type: OrderType
    order_date: date
    warehouse_id: UUID | None
    total: Decimal
    paid_amount: Decimal
    due_amount: Decimal
    payment_status: PaymentStatus


# ---------------------------------------------------------------------------
# Stock
# ---------------------------------------------------------------------------


class AdjustmentCreateIn(BaseModel):
    company_id: UUID | None = None
    warehouse_id: UUID | None = None
    product_id: UUID | None = None
    direction: str | None = None
    quantity: Decimal | None = None
    notes: str | None = None
    created_by: UUID | None = None


class AdjustmentPatchIn(BaseModel):
    """Omitted fields are left alone; ``notes: null`` clears the notes."""

    warehouse_id: UUID | None = None
    product_id: UUID | None = None
    direction: str | None = None
    quantity: Decimal | None = None
    notes: str | None = None


class AdjustmentResultOut(_FromAttributes):
    adjustment_id: UUID
    direction: AdjustmentDirection
    quantity: Decimal
    stock_delta: Decimal
    current_stock: Decimal | None
    movement_id: UUID | None


class AdjustmentOut(_FromAttributes):
    id: UUID
    company_id: UUID
    warehouse_id: UUID
    product_id: UUID
    direction: AdjustmentDirection
    quantity: Decimal
    notes: str | None
    created_by: UUID | None
    is_deletable: bool
    created_at: datetime
    updated_at: datetime | None


class TransferLineIn(BaseModel):
    product_id: UUID | None = None
    quantity: Decimal | None = None


class TransferCreateIn(BaseModel):
    company_id: UUID | None = None
    source_warehouse_id: UUID | None = None
    destination_warehouse_id: UUID | None = None
    transfer_date: date | None = None
    lines: list[TransferLineIn] = Field(default_factory=list)
    notes: str | None = None
    staff_user_id: UUID | None = None


class TransferResultOut(_FromAttributes):
    transfer_id: UUID
    reference_number: str
    total_items: int
    total_quantity: Decimal
    movement_ids: list[UUID]


class TransferLineOut(_FromAttributes):
    line_no: int
    product_id: UUID
    quantity: Decimal


class TransferOut(_FromAttributes):
    id: UUID
    reference_number: str
    company_id: UUID
    source_warehouse_id: UUID
    destination_warehouse_id: UUID
    transfer_date: date
    total_items: int
    total_quantity: Decimal
    notes: str | None
    staff_user_id: UUID | None
    created_at: datetime
    role: str | None = None
    lines: list[TransferLineOut] = Field(default_factory=list)


class MovementOut(_FromAttributes):
    id: UUID
    product_id: UUID
    warehouse_id: UUID
    quantity: Decimal
    kind: MovementKind
    reference_id: UUID | None
    reference_type: ReferenceType | None
    remarks: str | None
    created_at: datetime
