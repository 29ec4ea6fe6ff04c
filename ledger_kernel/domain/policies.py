"""
Ledger policies -- the named, configurable failure behaviors.

Responsibility:
    Collects every knob that changes how the ledger behaves when something
    it depends on is unavailable, plus the numeric tolerances and number
    formats.  Services receive a ``LedgerPolicies`` at construction; the
    kernel never reads configuration files itself (ledger_config.bridges
    builds this object from YAML).

Defaults preserve the established behavior of the system:
    - the duplicate guard fails OPEN (a check that cannot run lets the
      payment through, with a warning);
    - numbering fails SOFT (a synthetic ``{PREFIX}-ERR-{millis}-{hex}`` number);
    - stock and balance mutation always fail hard (not configurable).
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class DuplicateCheckPolicy(str, Enum):
    """What the duplicate guard does when a check cannot be performed."""

    FAIL_OPEN = "fail_open"
    FAIL_CLOSED = "fail_closed"


class NumberingFailurePolicy(str, Enum):
    """What numbering does when a number cannot be generated."""

    FAIL_SOFT = "fail_soft"
    FAIL_HARD = "fail_hard"


@dataclass(frozen=True)
class LedgerPolicies:
    # Order status band: due at or below this counts as paid
    status_tolerance: Decimal = Decimal("0.01")

    # Duplicate guard
    duplicate_amount_tolerance: Decimal = Decimal("0.01")
    duplicate_window_seconds: int = 30
    key_column_missing: DuplicateCheckPolicy = DuplicateCheckPolicy.FAIL_OPEN
    insufficient_data: DuplicateCheckPolicy = DuplicateCheckPolicy.FAIL_OPEN

    # Numbering
    numbering_failure: NumberingFailurePolicy = NumberingFailurePolicy.FAIL_SOFT
    payment_prefix: str = "PAY"
    transfer_prefix: str = "TR"
    sequence_width: int = 4
    unknown_warehouse_code: str = "DEF"
    warehouse_code_length: int = 3
