"""Immutable commands and results."""

from dataclasses import FrozenInstanceError
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.dtos import (
    UNSET,
    AdjustmentPatch,
    DuplicateMatch,
    PaymentResult,
    StockKey,
    TransferDraft,
    TransferLineRequest,
)
from ledger_kernel.domain.values import AdjustmentDirection, DuplicateReason


class TestAdjustmentPatch:
    def test_empty_patch_changes_nothing(self):
        patch = AdjustmentPatch()
        assert patch.changes() == {}
        assert not patch.is_set("notes")

    def test_only_supplied_fields_reported(self):
        patch = AdjustmentPatch(quantity=Decimal("3"))
        assert patch.changes() == {"quantity": Decimal("3")}

    def test_explicit_none_is_distinct_from_unset(self):
        patch = AdjustmentPatch(notes=None)
        assert patch.is_set("notes")
        assert patch.changes() == {"notes": None}

    def test_all_fields(self):
        patch = AdjustmentPatch(
            direction=AdjustmentDirection.SUBTRACT,
            quantity=Decimal("1"),
            notes="recount",
        )
        assert set(patch.changes()) == {"direction", "quantity", "notes"}

    def test_unset_is_a_falsy_singleton(self):
        assert not UNSET
        assert repr(UNSET) == "UNSET"
        assert type(UNSET)() is UNSET


class TestTransferDraft:
    def test_lines_coerced_to_tuple(self):
        line = TransferLineRequest(product_id=uuid4(), quantity=Decimal("2"))
        draft = TransferDraft(
            company_id=uuid4(),
            source_warehouse_id=uuid4(),
            destination_warehouse_id=uuid4(),
            transfer_date=date(2024, 3, 1),
            lines=[line],
        )
        assert draft.lines == (line,)

    def test_frozen(self):
        draft = TransferDraft(
            company_id=uuid4(),
            source_warehouse_id=uuid4(),
            destination_warehouse_id=uuid4(),
            transfer_date=date(2024, 3, 1),
        )
        with pytest.raises(FrozenInstanceError):
            draft.notes = "changed"


class TestPaymentResult:
    def test_duplicate_from_match(self):
        match = DuplicateMatch(
            payment_id=uuid4(),
            payment_number="PAY-IN-MAI-0001",
            reason=DuplicateReason.IDEMPOTENCY_KEY,
        )
        result = PaymentResult.duplicate(match)
        assert result.is_duplicate
        assert result.payment_id == match.payment_id
        assert result.payment_number == "PAY-IN-MAI-0001"
        assert result.reason is DuplicateReason.IDEMPOTENCY_KEY
        assert result.linked_order_ids == ()


class TestStockKey:
    def test_sort_key_orders_by_product_then_warehouse(self):
        p = uuid4()
        w1, w2 = sorted([uuid4(), uuid4()], key=str)
        keys = [StockKey(p, w2), StockKey(p, w1)]
        assert sorted(keys, key=StockKey.sort_key) == [StockKey(p, w1), StockKey(p, w2)]

    def test_hashable(self):
        p, w = uuid4(), uuid4()
        assert len({StockKey(p, w), StockKey(p, w)}) == 1
