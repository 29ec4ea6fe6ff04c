"""
Ledger configuration schema.

Frozen dataclasses parsed from YAML by ``ledger_config.loader``.  The
kernel never sees these types; ``ledger_config.bridges`` translates them
into kernel inputs (``LedgerPolicies``, engine arguments).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class DatabaseSettings:
    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class GuardSettings:
    """Duplicate-submission guard."""

    window_seconds: int = 30
    amount_tolerance: Decimal = Decimal("0.01")
    key_column_missing: str = "fail_open"
    insufficient_data: str = "fail_open"


@dataclass(frozen=True)
class NumberingSettings:
    payment_prefix: str = "PAY"
    transfer_prefix: str = "TR"
    sequence_width: int = 4
    unknown_warehouse_code: str = "DEF"
    warehouse_code_length: int = 3
    failure_policy: str = "fail_soft"


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class LedgerConfig:
    """Root configuration object returned by ``get_active_config()``."""

    database: DatabaseSettings
    status_tolerance: Decimal = Decimal("0.01")
    guard: GuardSettings = field(default_factory=GuardSettings)
    numbering: NumberingSettings = field(default_factory=NumberingSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    source: str | None = None
