"""
Bridges from configuration to kernel inputs.

The kernel MUST NEVER import from ``ledger_config``; these functions
translate a parsed ``LedgerConfig`` into the plain kernel objects that
services and the engine accept.
"""

from __future__ import annotations

from typing import Any

from ledger_config.schema import LedgerConfig
from ledger_kernel.domain.policies import (
    DuplicateCheckPolicy,
    LedgerPolicies,
    NumberingFailurePolicy,
)


def build_ledger_policies(config: LedgerConfig) -> LedgerPolicies:
    guard = config.guard
    numbering = config.numbering
    return LedgerPolicies(
        status_tolerance=config.status_tolerance,
        duplicate_amount_tolerance=guard.amount_tolerance,
        duplicate_window_seconds=guard.window_seconds,
        key_column_missing=DuplicateCheckPolicy(guard.key_column_missing),
        insufficient_data=DuplicateCheckPolicy(guard.insufficient_data),
        numbering_failure=NumberingFailurePolicy(numbering.failure_policy),
        payment_prefix=numbering.payment_prefix,
        transfer_prefix=numbering.transfer_prefix,
        sequence_width=numbering.sequence_width,
        unknown_warehouse_code=numbering.unknown_warehouse_code,
        warehouse_code_length=numbering.warehouse_code_length,
    )


def engine_kwargs(config: LedgerConfig) -> dict[str, Any]:
    """Keyword arguments for ``ledger_kernel.db.engine.init_engine_from_url``."""
    db = config.database
    return {
        "database_url": db.url,
        "echo": db.echo,
        "pool_size": db.pool_size,
        "max_overflow": db.max_overflow,
        "pool_timeout": db.pool_timeout,
        "pool_recycle": db.pool_recycle,
    }
