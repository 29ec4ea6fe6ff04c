"""Services for the ledger kernel (write side)."""

from ledger_kernel.services.directory import (
    Catalog,
    ProductInfo,
    SqlCatalog,
    SqlWarehouseDirectory,
    WarehouseDirectory,
    WarehouseInfo,
)
from ledger_kernel.services.duplicate_guard import DuplicateGuard, SqlSchemaProbe
from ledger_kernel.services.numbering_service import NumberingService
from ledger_kernel.services.order_status_projector import OrderStatusProjector
from ledger_kernel.services.payment_reconciliation import PaymentReconciliationService
from ledger_kernel.services.sequence_service import SequenceService
from ledger_kernel.services.stock_adjustment_workflow import StockAdjustmentWorkflow
from ledger_kernel.services.stock_movement_engine import StockMovementEngine
from ledger_kernel.services.stock_transfer_workflow import StockTransferWorkflow
from ledger_kernel.services.transaction_coordinator import TransactionCoordinator

__all__ = [
    "Catalog",
    "DuplicateGuard",
    "NumberingService",
    "OrderStatusProjector",
    "PaymentReconciliationService",
    "ProductInfo",
    "SequenceService",
    "SqlCatalog",
    "SqlSchemaProbe",
    "SqlWarehouseDirectory",
    "StockAdjustmentWorkflow",
    "StockMovementEngine",
    "StockTransferWorkflow",
    "TransactionCoordinator",
    "WarehouseDirectory",
    "WarehouseInfo",
]
