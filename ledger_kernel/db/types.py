"""
Module: ledger_kernel.db.types
Responsibility: Annotated type aliases and Decimal helpers for money and
    stock-quantity columns, so every model and service uses identical
    precision.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats in ledger code.  Amounts and quantities are Decimal,
      stored as Numeric(38, 9).  The SQLite driver has no decimal type and
      binds Numeric as float, so values read back from SQLite are
      re-quantized to 9 places; PostgreSQL keeps them exact.
    - as_decimal() is the single conversion point for untyped numeric input
      and rejects floats' binary noise by going through str().
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any

from sqlalchemy import Numeric, String

# Monetary amount: 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Signed stock quantity, same precision as money
Quantity = Annotated[Decimal, Numeric(38, 9)]

ShortCode = Annotated[str, String(50)]

LongText = Annotated[str, String(4000)]

LEDGER_DECIMAL_PLACES = 9
DEFAULT_ROUNDING = ROUND_HALF_UP

_LEDGER_QUANTUM = Decimal(1).scaleb(-LEDGER_DECIMAL_PLACES)


def as_decimal(value: Any) -> Decimal:
    """
    Convert int, str, float or Decimal input into a Decimal.

    Raises:
        ValueError: if the value is not numeric.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a numeric value: {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Not a numeric value: {value!r}") from exc


def quantize_ledger(value: Decimal) -> Decimal:
    """Round to the stored column precision (9 places, half-up)."""
    return value.quantize(_LEDGER_QUANTUM, rounding=DEFAULT_ROUNDING)

