"""
Closed enumerations used across the ledger.

Every enum is a ``str, Enum`` so that members compare equal to their stored
string values and serialize directly into String columns and JSON.  Raw
strings from the outside world are parsed exactly once, at the boundary,
through ``parse_enum``; everything below the boundary handles members.
"""

from decimal import Decimal
from enum import Enum
from typing import TypeVar

from ledger_kernel.exceptions import InvalidEnumValueError


class PaymentDirection(str, Enum):
    """Money received from a customer (IN) or paid to a supplier (OUT)."""

    IN = "in"
    OUT = "out"

    @property
    def number_code(self) -> str:
        """Segment used in generated payment numbers."""
        return self.value.upper()


class AdjustmentDirection(str, Enum):
    ADD = "add"
    SUBTRACT = "subtract"

    def signed(self, quantity: Decimal) -> Decimal:
        """Stock effect of an adjustment of ``quantity`` in this direction."""
        return quantity if self is AdjustmentDirection.ADD else -quantity


class MovementKind(str, Enum):
    """Why a stock movement happened."""

    PURCHASE = "purchase"
    SALES = "sales"
    ADJUSTMENT = "adjustment"
    ADJUSTMENT_REVERSAL = "adjustment_reversal"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    PRODUCTION = "production"
    RETURN_IN = "return_in"
    RETURN_OUT = "return_out"
    DELETION = "deletion"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"


class DuplicateReason(str, Enum):
    IDEMPOTENCY_KEY = "idempotency_key"
    SIMILARITY = "similarity"


class OrderType(str, Enum):
    """Order kinds owned by the order CRUD layer."""

    SALES = "sales"
    PURCHASES = "purchases"
    SALES_RETURNS = "sales_returns"
    PURCHASE_RETURNS = "purchase_returns"


class ReferenceType(str, Enum):
    """Entity a stock movement points back to."""

    STOCK_ADJUSTMENT = "stock_adjustment"
    STOCK_TRANSFER = "stock_transfer"
    ORDER = "order"


E = TypeVar("E", bound=Enum)


def parse_enum(enum_cls: type[E], value: str | E) -> E:
    """
    Parse a raw value into a member of ``enum_cls``.

    Accepts an existing member, or its value compared case-insensitively
    after stripping whitespace.

    Raises:
        InvalidEnumValueError: if the value is not a member.
    """
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        candidate = value.strip().lower()
        for member in enum_cls:
            if member.value == candidate:
                return member
    raise InvalidEnumValueError(
        enum_name=enum_cls.__name__,
        value=value,
        allowed=[m.value for m in enum_cls],
    )
