"""
DTOs -- Immutable commands and results exchanged with the ledger services.

Responsibility:
    Defines the frozen dataclasses the boundary builds (drafts, link requests,
    patches) and the frozen results the services return.  Services accept and
    return these, never ORM instances, so callers cannot mutate ledger rows
    behind a service's back.

Architecture position:
    Kernel > Domain -- pure, zero I/O, no ORM imports.

Invariants enforced:
    - AdjustmentPatch distinguishes "field omitted" (UNSET) from
      "field explicitly cleared" (None).
    - TransferDraft.lines is always a tuple.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from ledger_kernel.domain.values import (
    AdjustmentDirection,
    DuplicateReason,
    MovementKind,
    PaymentDirection,
    PaymentStatus,
)


class _Unset:
    """Sentinel type for patch fields that were not supplied."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


# =============================================================================
# Payments
# =============================================================================


@dataclass(frozen=True)
class PaymentDraft:
    """A payment as submitted, before numbering and duplicate checks."""

    company_id: UUID
    warehouse_id: UUID | None
    direction: PaymentDirection
    payment_date: date
    amount: Decimal
    payment_mode_id: UUID | None = None
    counterparty_id: UUID | None = None
    notes: str | None = None
    staff_user_id: UUID | None = None


@dataclass(frozen=True)
class OrderLinkRequest:
    """Apply ``amount`` of a payment to one order."""

    order_id: UUID
    amount: Decimal
    remarks: str | None = None


@dataclass(frozen=True)
class DuplicateMatch:
    payment_id: UUID
    payment_number: str
    reason: DuplicateReason


@dataclass(frozen=True)
class PaymentResult:
    """
    Outcome of create_payment.

    For a duplicate, payment_id and payment_number identify the payment
    that was already recorded and nothing new was written.
    """

    payment_id: UUID
    payment_number: str
    is_duplicate: bool
    reason: DuplicateReason | None = None
    linked_order_ids: tuple[UUID, ...] = ()
    skipped_order_ids: tuple[UUID, ...] = ()

    @classmethod
    def duplicate(cls, match: DuplicateMatch) -> PaymentResult:
        return cls(
            payment_id=match.payment_id,
            payment_number=match.payment_number,
            is_duplicate=True,
            reason=match.reason,
        )


@dataclass(frozen=True)
class PaymentDeletion:
    payment_id: UUID
    payment_number: str
    reprojected_order_ids: tuple[UUID, ...]


@dataclass(frozen=True)
class OrderBalance:
    order_id: UUID
    total: Decimal
    paid_amount: Decimal
    due_amount: Decimal
    status: PaymentStatus
    is_deletable: bool


# =============================================================================
# Stock
# =============================================================================


@dataclass(frozen=True)
class StockKey:
    """Identity of one stock level row; orders by (product, warehouse) text."""

    product_id: UUID
    warehouse_id: UUID

    def sort_key(self) -> tuple[str, str]:
        return (str(self.product_id), str(self.warehouse_id))


@dataclass(frozen=True)
class MovementResult:
    movement_id: UUID
    product_id: UUID
    warehouse_id: UUID
    quantity: Decimal
    kind: MovementKind
    current_stock: Decimal


@dataclass(frozen=True)
class AdjustmentDraft:
    company_id: UUID
    warehouse_id: UUID
    product_id: UUID
    direction: AdjustmentDirection
    quantity: Decimal
    notes: str | None = None
    created_by: UUID | None = None


@dataclass(frozen=True)
class AdjustmentPatch:
    """
    Partial update of a stock adjustment.

    Fields left at UNSET keep their stored value.  ``notes=None`` clears
    the notes; no other field can be cleared.  A new ``warehouse_id`` or
    ``product_id`` moves the adjustment's stock effect to that stock level.
    """

    warehouse_id: UUID | None = UNSET
    product_id: UUID | None = UNSET
    direction: AdjustmentDirection | None = UNSET
    quantity: Decimal | None = UNSET
    notes: str | None = UNSET

    def is_set(self, name: str) -> bool:
        return getattr(self, name) is not UNSET

    def changes(self) -> dict[str, Any]:
        """Only the fields that were supplied."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if self.is_set(f.name)
        }


@dataclass(frozen=True)
class AdjustmentResult:
    adjustment_id: UUID
    direction: AdjustmentDirection
    quantity: Decimal
    stock_delta: Decimal
    current_stock: Decimal | None
    movement_id: UUID | None = None


@dataclass(frozen=True)
class TransferLineRequest:
    product_id: UUID
    quantity: Decimal


@dataclass(frozen=True)
class TransferDraft:
    company_id: UUID
    source_warehouse_id: UUID
    destination_warehouse_id: UUID
    transfer_date: date
    lines: tuple[TransferLineRequest, ...] = field(default_factory=tuple)
    notes: str | None = None
    staff_user_id: UUID | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.lines, tuple):
            object.__setattr__(self, "lines", tuple(self.lines))


@dataclass(frozen=True)
class TransferResult:
    transfer_id: UUID
    reference_number: str
    total_items: int
    total_quantity: Decimal
    movement_ids: tuple[UUID, ...] = ()
