"""
Pure domain layer.

Value types, commands, results and rules with NO dependencies on the ORM,
the database, or I/O (other than SystemClock).
"""

from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.dtos import (
    UNSET,
    AdjustmentDraft,
    AdjustmentPatch,
    AdjustmentResult,
    DuplicateMatch,
    MovementResult,
    OrderBalance,
    OrderLinkRequest,
    PaymentDeletion,
    PaymentDraft,
    PaymentResult,
    StockKey,
    TransferDraft,
    TransferLineRequest,
    TransferResult,
)
from ledger_kernel.domain.order_status import DerivedOrderBalance, derive_payment_status
from ledger_kernel.domain.values import (
    AdjustmentDirection,
    DuplicateReason,
    MovementKind,
    OrderType,
    PaymentDirection,
    PaymentStatus,
    ReferenceType,
    parse_enum,
)

__all__ = [
    "AdjustmentDirection",
    "AdjustmentDraft",
    "AdjustmentPatch",
    "AdjustmentResult",
    "Clock",
    "DerivedOrderBalance",
    "DeterministicClock",
    "DuplicateMatch",
    "DuplicateReason",
    "MovementKind",
    "MovementResult",
    "OrderBalance",
    "OrderLinkRequest",
    "OrderType",
    "PaymentDeletion",
    "PaymentDirection",
    "PaymentDraft",
    "PaymentResult",
    "PaymentStatus",
    "ReferenceType",
    "StockKey",
    "SystemClock",
    "TransferDraft",
    "TransferLineRequest",
    "TransferResult",
    "UNSET",
    "derive_payment_status",
    "parse_enum",
]
