#!/usr/bin/env python3
"""
Create the ledger schema in the configured database.

Usage:
  python3 scripts/init_db.py [--db-url URL] [--config PATH] [--drop]

The database URL comes from --db-url, else DATABASE_URL, else the active
configuration (ledger_config/defaults.yaml or the LEDGER_CONFIG file).
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Create all ledger tables")
    p.add_argument("--db-url", default=None, help="Database URL (overrides configuration)")
    p.add_argument("--config", default=None, help="YAML configuration override file")
    p.add_argument("--drop", action="store_true", help="Drop existing ledger tables first")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    from ledger_config import get_active_config
    from ledger_config.bridges import engine_kwargs
    from ledger_kernel.db.engine import (
        create_tables,
        drop_tables,
        init_engine_from_url,
        reset_engine,
    )
    from ledger_kernel.logging_config import configure_logging

    config = get_active_config(args.config)
    configure_logging(level=config.logging.level)
    kwargs = engine_kwargs(config)
    if args.db_url:
        kwargs["database_url"] = args.db_url

    init_engine_from_url(**kwargs)
    try:
        if args.drop:
            drop_tables()
        create_tables()
    finally:
        reset_engine()

    print(f"Ledger schema ready at {kwargs['database_url']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
