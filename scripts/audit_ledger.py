#!/usr/bin/env python3
"""
Check the ledger invariants and report drift.

For every stock level, current_stock must equal the sum of its movements;
for every live order, paid/due/status/is_deletable must match what its
payment links imply.  Exits 1 when any discrepancy is found, 0 otherwise.

Usage:
  python3 scripts/audit_ledger.py [--db-url URL] [--config PATH]
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Audit ledger invariants")
    p.add_argument("--db-url", default=None, help="Database URL (overrides configuration)")
    p.add_argument("--config", default=None, help="YAML configuration override file")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    from ledger_config import get_active_config
    from ledger_config.bridges import engine_kwargs
    from ledger_kernel.db.engine import init_engine_from_url, reset_engine, session_scope
    from ledger_kernel.logging_config import configure_logging
    from ledger_kernel.selectors.ledger_auditor import LedgerAuditor

    config = get_active_config(args.config)
    configure_logging(level=config.logging.level)
    kwargs = engine_kwargs(config)
    if args.db_url:
        kwargs["database_url"] = args.db_url

    init_engine_from_url(**kwargs)
    try:
        with session_scope() as session:
            auditor = LedgerAuditor(session, status_tolerance=config.status_tolerance)
            stock = auditor.stock_discrepancies()
            orders = auditor.order_discrepancies()
    finally:
        reset_engine()

    for d in stock:
        print(
            f"STOCK  product={d.product_id} warehouse={d.warehouse_id} "
            f"stored={d.stored_stock} ledger={d.ledger_stock} diff={d.difference}"
        )
    for d in orders:
        print(
            f"ORDER  order={d.order_id} paid={d.stored_paid}/{d.ledger_paid} "
            f"due={d.stored_due}/{d.expected_due} "
            f"status={d.stored_status.value}/{d.expected_status.value}"
        )

    if stock or orders:
        print(f"{len(stock)} stock and {len(orders)} order discrepancies found")
        return 1
    print("Ledger consistent")
    return 0


if __name__ == "__main__":
    sys.exit(main())
