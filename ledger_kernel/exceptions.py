"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Ledger operations fail for a small number of reasons that callers must
tell apart without parsing messages:

  - the request itself is invalid (client error, nothing was written)
  - something it references does not exist
  - the target is in a state that forbids the operation
  - an infrastructure policy refused to proceed

Every exception therefore has:
  1. a TYPED class (catch by type, not message)
  2. a CODE attribute (machine-readable, API-safe)
  3. structured DATA attributes (picked up by the JSON log formatter)

Example:
    try:
        workflow.delete(adjustment_id)
    except AdjustmentNotDeletableError as e:
        api_response(status=403, code=e.code, adjustment=e.adjustment_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerError (base)
    |
    +-- LedgerValidationError            -> HTTP 400
    |   +-- MissingFieldError
    |   +-- InvalidQuantityError
    |   +-- InvalidAmountError
    |   +-- InvalidEnumValueError
    |   +-- CompanyMismatchError
    |   +-- SameWarehouseTransferError
    |   +-- EmptyTransferError
    |
    +-- LedgerNotFoundError              -> HTTP 404
    |   +-- PaymentNotFoundError
    |   +-- OrderNotFoundError
    |   +-- AdjustmentNotFoundError
    |   +-- ProductNotFoundError
    |   +-- WarehouseNotFoundError
    |   +-- StockLevelNotFoundError
    |   +-- TransferNotFoundError
    |
    +-- LedgerConflictError              -> HTTP 403
    |   +-- AdjustmentLockedError
    |   +-- AdjustmentNotDeletableError
    |
    +-- DuplicateCheckUnavailableError   -> HTTP 503 (fail_closed policy only)
    +-- NumberingError                   (fail_hard policy only)
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

Validation errors are always raised before the first write of a unit of
work.  Anything raised after the first write aborts the whole unit of
work (see services/transaction_coordinator.py).
"""

from typing import Any


class LedgerError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses must have a `code` class attribute for
    machine-readable error identification.
    """

    code: str = "LEDGER_ERROR"


# =============================================================================
# Validation
# =============================================================================


class LedgerValidationError(LedgerError):
    """Base exception for malformed or inconsistent requests."""

    code: str = "VALIDATION_ERROR"


class MissingFieldError(LedgerValidationError):
    """A required field was absent from the request."""

    code: str = "MISSING_FIELD"

    def __init__(self, field_name: str, context: str | None = None):
        self.field_name = field_name
        self.context = context
        where = f" ({context})" if context else ""
        super().__init__(f"Missing required field: {field_name}{where}")


class InvalidQuantityError(LedgerValidationError):
    """A quantity is outside its allowed range (strictly positive unless stated)."""

    code: str = "INVALID_QUANTITY"

    def __init__(
        self,
        quantity: Any,
        field_name: str = "quantity",
        requirement: str = "greater than zero",
    ):
        self.quantity = str(quantity)
        self.field_name = field_name
        self.requirement = requirement
        super().__init__(f"{field_name} must be {requirement}, got {quantity}")


class InvalidAmountError(LedgerValidationError):
    """Monetary amount must be strictly positive."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: Any, field_name: str = "amount"):
        self.amount = str(amount)
        self.field_name = field_name
        super().__init__(f"{field_name} must be greater than zero, got {amount}")


class InvalidEnumValueError(LedgerValidationError):
    """A value is not a member of a closed enumeration."""

    code: str = "INVALID_ENUM_VALUE"

    def __init__(self, enum_name: str, value: Any, allowed: list[str]):
        self.enum_name = enum_name
        self.value = str(value)
        self.allowed = allowed
        super().__init__(
            f"Invalid {enum_name}: {value!r} (allowed: {', '.join(allowed)})"
        )


class CompanyMismatchError(LedgerValidationError):
    """Referenced entities belong to different companies."""

    code: str = "COMPANY_MISMATCH"

    def __init__(self, expected_company_id: str, actual_company_id: str, entity: str):
        self.expected_company_id = expected_company_id
        self.actual_company_id = actual_company_id
        self.entity = entity
        super().__init__(
            f"{entity} belongs to company {actual_company_id}, "
            f"expected {expected_company_id}"
        )


class SameWarehouseTransferError(LedgerValidationError):
    """Source and destination warehouse of a transfer are identical."""

    code: str = "SAME_WAREHOUSE_TRANSFER"

    def __init__(self, warehouse_id: str):
        self.warehouse_id = warehouse_id
        super().__init__(
            f"Source and destination warehouse must differ: {warehouse_id}"
        )


class EmptyTransferError(LedgerValidationError):
    """A transfer was submitted without any lines."""

    code: str = "EMPTY_TRANSFER"

    def __init__(self):
        super().__init__("A stock transfer requires at least one line")


# =============================================================================
# Not found
# =============================================================================


class LedgerNotFoundError(LedgerError):
    """Base exception for missing referenced entities."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class PaymentNotFoundError(LedgerNotFoundError):
    code: str = "PAYMENT_NOT_FOUND"

    def __init__(self, payment_id: str):
        self.payment_id = payment_id
        super().__init__("Payment", payment_id)


class OrderNotFoundError(LedgerNotFoundError):
    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__("Order", order_id)


class AdjustmentNotFoundError(LedgerNotFoundError):
    code: str = "ADJUSTMENT_NOT_FOUND"

    def __init__(self, adjustment_id: str):
        self.adjustment_id = adjustment_id
        super().__init__("StockAdjustment", adjustment_id)


class ProductNotFoundError(LedgerNotFoundError):
    """Product does not exist, or is inactive or deleted."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str, reason: str = "does not exist"):
        self.product_id = product_id
        self.reason = reason
        super().__init__("Product", product_id)


class WarehouseNotFoundError(LedgerNotFoundError):
    code: str = "WAREHOUSE_NOT_FOUND"

    def __init__(self, warehouse_id: str):
        self.warehouse_id = warehouse_id
        super().__init__("Warehouse", warehouse_id)


class StockLevelNotFoundError(LedgerNotFoundError):
    """
    No stock level row exists for (product, warehouse).

    Stock level rows are provisioned by the product catalog when a product
    is stocked in a warehouse; the movement engine never creates them.
    """

    code: str = "STOCK_LEVEL_NOT_FOUND"

    def __init__(self, product_id: str, warehouse_id: str):
        self.product_id = product_id
        self.warehouse_id = warehouse_id
        super().__init__("StockLevel", f"{product_id}@{warehouse_id}")


class TransferNotFoundError(LedgerNotFoundError):
    code: str = "TRANSFER_NOT_FOUND"

    def __init__(self, transfer_id: str):
        self.transfer_id = transfer_id
        super().__init__("StockTransfer", transfer_id)


# =============================================================================
# Conflicts (state forbids the operation)
# =============================================================================


class LedgerConflictError(LedgerError):
    """Base exception for operations forbidden by the target's state."""

    code: str = "CONFLICT"


class AdjustmentLockedError(LedgerConflictError):
    """An adjustment referenced elsewhere can no longer be edited."""

    code: str = "ADJUSTMENT_LOCKED"

    def __init__(self, adjustment_id: str):
        self.adjustment_id = adjustment_id
        super().__init__(f"Stock adjustment {adjustment_id} can no longer be edited")


class AdjustmentNotDeletableError(LedgerConflictError):
    """An adjustment referenced elsewhere cannot be deleted."""

    code: str = "ADJUSTMENT_NOT_DELETABLE"

    def __init__(self, adjustment_id: str):
        self.adjustment_id = adjustment_id
        super().__init__(f"Stock adjustment {adjustment_id} cannot be deleted")


# =============================================================================
# Policy refusals
# =============================================================================


class DuplicateCheckUnavailableError(LedgerError):
    """
    The duplicate guard could not run and policy is fail_closed.

    Under the default fail_open policy this is never raised; the guard
    logs a warning and treats the submission as new.
    """

    code: str = "DUPLICATE_CHECK_UNAVAILABLE"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Duplicate check unavailable: {reason}")


class NumberingError(LedgerError):
    """A document number could not be generated and policy is fail_hard."""

    code: str = "NUMBERING_FAILED"

    def __init__(self, sequence_name: str, reason: str):
        self.sequence_name = sequence_name
        self.reason = reason
        super().__init__(f"Could not allocate number for {sequence_name}: {reason}")


# =============================================================================
# Immutability
# =============================================================================


class ImmutabilityError(LedgerError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete a write-once ledger record.

    Stock movements are never updated or deleted; payments and order
    payment links are never updated (only removed by delete_payment).
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )

