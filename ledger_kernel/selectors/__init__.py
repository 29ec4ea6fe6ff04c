"""Selectors for the ledger kernel (read side)."""

from ledger_kernel.selectors.base import BaseSelector, Page
from ledger_kernel.selectors.ledger_auditor import (
    LedgerAuditor,
    OrderDiscrepancy,
    StockDiscrepancy,
)
from ledger_kernel.selectors.order_selector import OrderSelector, UnpaidOrder
from ledger_kernel.selectors.payment_selector import (
    LinkedOrder,
    PaymentDetail,
    PaymentFilter,
    PaymentSelector,
    PaymentSummary,
    PaymentTotals,
)
from ledger_kernel.selectors.stock_selector import (
    AdjustmentFilter,
    AdjustmentRecord,
    MovementRecord,
    StockSelector,
    TransferLineRecord,
    TransferRecord,
)

__all__ = [
    "AdjustmentFilter",
    "AdjustmentRecord",
    "BaseSelector",
    "LedgerAuditor",
    "LinkedOrder",
    "MovementRecord",
    "OrderDiscrepancy",
    "OrderSelector",
    "Page",
    "PaymentDetail",
    "PaymentFilter",
    "PaymentSelector",
    "PaymentSummary",
    "PaymentTotals",
    "StockDiscrepancy",
    "StockSelector",
    "TransferLineRecord",
    "TransferRecord",
    "UnpaidOrder",
]
