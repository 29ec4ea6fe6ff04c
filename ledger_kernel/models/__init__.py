"""ORM models for the ledger kernel."""

from ledger_kernel.models.directory import Product, Warehouse
from ledger_kernel.models.order import Order
from ledger_kernel.models.payment import OrderPaymentLink, Payment
from ledger_kernel.models.sequence import SequenceCounter
from ledger_kernel.models.stock import (
    StockAdjustment,
    StockLevel,
    StockMovement,
    StockTransfer,
    StockTransferLine,
)

__all__ = [
    "Order",
    "OrderPaymentLink",
    "Payment",
    "Product",
    "SequenceCounter",
    "StockAdjustment",
    "StockLevel",
    "StockMovement",
    "StockTransfer",
    "StockTransferLine",
    "Warehouse",
]
