"""
Concurrent writers against one database.

Each worker runs its own unit of work through the coordinator.  Threads
start together behind a barrier so the transactions genuinely overlap;
on SQLite they are serialized by BEGIN IMMEDIATE, on PostgreSQL
(DATABASE_URL) by row locks and unique constraints.

Run with:
    pytest tests/concurrency -m slow_locks -v
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import Barrier
from typing import Callable

import pytest
from sqlalchemy import func, select

from ledger_kernel.domain.dtos import OrderLinkRequest
from ledger_kernel.domain.values import AdjustmentDirection, DuplicateReason, PaymentStatus
from ledger_kernel.models.order import Order
from ledger_kernel.models.payment import Payment
from ledger_kernel.selectors.ledger_auditor import LedgerAuditor
from ledger_kernel.selectors.stock_selector import StockSelector

pytestmark = pytest.mark.slow_locks

THREADS = 8
BARRIER_TIMEOUT = 10


def run_together(count: int, work: Callable[[int], object]) -> list:
    """Run work(0..count-1) in parallel, released at the same instant."""
    barrier = Barrier(count)

    def _task(i: int):
        barrier.wait(timeout=BARRIER_TIMEOUT)
        return work(i)

    with ThreadPoolExecutor(max_workers=count) as pool:
        futures = [pool.submit(_task, i) for i in range(count)]
        return [f.result() for f in futures]


def _count(session_factory, model) -> int:
    with session_factory() as s:
        return s.execute(select(func.count()).select_from(model)).scalar_one()


class TestConcurrentNumbering:
    def test_payment_numbers_are_distinct(self, coordinator, payment_draft):
        # Distinct amounts keep the similarity check out of the way
        results = run_together(
            THREADS, lambda i: coordinator.create_payment(payment_draft(str(100 + i)))
        )

        numbers = [r.payment_number for r in results]
        assert not any(r.is_duplicate for r in results)
        assert sorted(numbers) == [f"PAY-IN-MAI-{n:04d}" for n in range(1, THREADS + 1)]

    def test_transfer_references_are_distinct(self, coordinator, transfer_draft, world):
        results = run_together(
            THREADS, lambda i: coordinator.create_transfer(transfer_draft((world.widget_id, "1")))
        )

        references = {r.reference_number for r in results}
        assert len(references) == THREADS
        assert all(ref.startswith("TR-MAI") for ref in references)


class TestConcurrentDuplicates:
    def test_same_idempotency_key_creates_one_payment(self, coordinator, session_factory, payment_draft):
        results = run_together(
            THREADS,
            lambda i: coordinator.create_payment(payment_draft("75"), idempotency_key="till-7"),
        )

        created = [r for r in results if not r.is_duplicate]
        duplicates = [r for r in results if r.is_duplicate]
        assert len(created) == 1
        assert all(r.reason is DuplicateReason.IDEMPOTENCY_KEY for r in duplicates)
        assert {r.payment_id for r in results} == {created[0].payment_id}
        assert _count(session_factory, Payment) == 1

    def test_identical_drafts_without_key_resolve_to_stored_payments(
        self, coordinator, session_factory, payment_draft
    ):
        # Without a key, two overlapping transactions may both miss each
        # other on PostgreSQL; every duplicate must still name a stored row.
        results = run_together(THREADS, lambda i: coordinator.create_payment(payment_draft("75")))

        created_ids = {r.payment_id for r in results if not r.is_duplicate}
        assert created_ids
        assert all(r.payment_id in created_ids for r in results)
        assert _count(session_factory, Payment) == len(created_ids)

    def test_linked_payments_keep_order_consistent(self, coordinator, session_factory, make_order, payment_draft):
        order_id = make_order("80")

        run_together(
            THREADS,
            lambda i: coordinator.create_payment(
                payment_draft(str(10 + i)), [OrderLinkRequest(order_id, Decimal("10"))]
            ),
        )

        with session_factory() as s:
            order = s.get(Order, order_id)
            assert order.paid_amount == Decimal("80")
            assert order.due_amount == Decimal("0")
            assert order.payment_status == PaymentStatus.PAID
            assert order.is_deletable is False
            assert LedgerAuditor(s).order_discrepancies() == []


class TestConcurrentStock:
    def test_adjustments_keep_stock_equal_to_movements(self, coordinator, session_factory, adjustment_draft, world):
        def adjust(i: int):
            direction = AdjustmentDirection.ADD if i % 2 else AdjustmentDirection.SUBTRACT
            return coordinator.create_adjustment(adjustment_draft(str(i + 1), direction))

        run_together(THREADS, adjust)

        # ADD on odd i: 2+4+6+8 = 20, SUBTRACT on even i: 1+3+5+7 = 16
        with session_factory() as s:
            assert LedgerAuditor(s).stock_discrepancies() == []
        with session_factory() as s:
            assert StockSelector(s).current_stock(world.widget_id, world.main_id) == Decimal("54")

    def test_opposing_transfers_do_not_deadlock(self, coordinator, session_factory, transfer_draft, world):
        def transfer(i: int):
            if i % 2:
                return coordinator.create_transfer(transfer_draft((world.widget_id, "1")))
            return coordinator.create_transfer(
                transfer_draft(
                    (world.widget_id, "1"),
                    source_warehouse_id=world.north_id,
                    destination_warehouse_id=world.main_id,
                )
            )

        results = run_together(THREADS, transfer)

        assert len(results) == THREADS
        with session_factory() as s:
            assert LedgerAuditor(s).stock_discrepancies() == []
