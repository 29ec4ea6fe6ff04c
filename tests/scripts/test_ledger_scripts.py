"""Command-line entry points: schema creation and the ledger audit."""

import logging
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, inspect, update

from ledger_kernel.logging_config import configure_logging, reset_logging
from ledger_kernel.models.stock import StockLevel
from scripts import audit_ledger, init_db


@pytest.fixture(autouse=True)
def _restore_logging():
    yield
    reset_logging()
    configure_logging(level=logging.DEBUG)


class TestInitDb:
    def test_creates_schema(self, tmp_path, capsys):
        url = f"sqlite:///{tmp_path / 'fresh.db'}"

        assert init_db.main(["--db-url", url]) == 0

        engine = create_engine(url)
        try:
            tables = set(inspect(engine).get_table_names())
        finally:
            engine.dispose()
        assert {"payments", "order_payments", "stock_levels", "stock_movements"} <= tables
        assert "Ledger schema ready" in capsys.readouterr().out

    def test_drop_and_recreate(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'fresh.db'}"
        assert init_db.main(["--db-url", url]) == 0
        assert init_db.main(["--db-url", url, "--drop"]) == 0


class TestAuditLedger:
    def test_consistent(self, database_url, world, capsys):
        assert audit_ledger.main(["--db-url", database_url]) == 0
        assert "Ledger consistent" in capsys.readouterr().out

    def test_reports_drift(self, database_url, session_factory, world, capsys):
        with session_factory() as s:
            s.execute(
                update(StockLevel)
                .where(StockLevel.product_id == world.widget_id, StockLevel.warehouse_id == world.main_id)
                .values(current_stock=Decimal("49"))
            )
            s.commit()

        assert audit_ledger.main(["--db-url", database_url]) == 1
        out = capsys.readouterr().out
        assert f"STOCK  product={world.widget_id}" in out
        assert "1 stock and 0 order discrepancies found" in out
