"""StockTransferWorkflow: multi-line transfers between warehouses."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from ledger_kernel.domain.dtos import TransferLineRequest
from ledger_kernel.domain.values import MovementKind, ReferenceType
from ledger_kernel.exceptions import (
    CompanyMismatchError,
    EmptyTransferError,
    InvalidQuantityError,
    MissingFieldError,
    ProductNotFoundError,
    SameWarehouseTransferError,
    StockLevelNotFoundError,
    WarehouseNotFoundError,
)
from ledger_kernel.models.sequence import SequenceCounter
from ledger_kernel.models.stock import StockMovement, StockTransfer, StockTransferLine
from ledger_kernel.services.stock_movement_engine import StockMovementEngine
from ledger_kernel.services.stock_transfer_workflow import StockTransferWorkflow


@pytest.fixture
def workflow(session, clock, policies):
    return StockTransferWorkflow(session, clock, policies)


@pytest.fixture
def stock(session, clock):
    engine = StockMovementEngine(session, clock)
    return engine.current_stock


def _count(session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar_one()


class TestCreate:
    def test_moves_stock(self, workflow, transfer_draft, stock, world):
        result = workflow.create(transfer_draft())

        assert stock(world.widget_id, world.main_id) == Decimal("30")
        assert stock(world.widget_id, world.north_id) == Decimal("25")
        assert result.reference_number == "TR-MAI012024-0001"
        assert result.total_items == 1
        assert result.total_quantity == Decimal("20")

    def test_movements_in_out_pairs(self, workflow, transfer_draft, session, world):
        result = workflow.create(transfer_draft((world.widget_id, "20"), (world.gadget_id, "4")))

        assert len(result.movement_ids) == 4
        movements = [session.get(StockMovement, mid) for mid in result.movement_ids]
        assert [(m.kind, m.warehouse_id, m.quantity) for m in movements] == [
            (MovementKind.TRANSFER_OUT, world.main_id, Decimal("-20")),
            (MovementKind.TRANSFER_IN, world.north_id, Decimal("20")),
            (MovementKind.TRANSFER_OUT, world.main_id, Decimal("-4")),
            (MovementKind.TRANSFER_IN, world.north_id, Decimal("4")),
        ]
        for movement in movements:
            assert movement.reference_id == result.transfer_id
            assert movement.reference_type == ReferenceType.STOCK_TRANSFER
            assert movement.remarks == f"Transfer {result.reference_number}"

    def test_multi_line_totals(self, workflow, transfer_draft, stock, world):
        result = workflow.create(transfer_draft((world.widget_id, "20"), (world.gadget_id, "5")))

        assert result.total_items == 2
        assert result.total_quantity == Decimal("25")
        assert stock(world.gadget_id, world.main_id) == Decimal("5")
        assert stock(world.gadget_id, world.north_id) == Decimal("5")

    def test_transfer_and_lines_stored(self, workflow, transfer_draft, session, world):
        staff = uuid4()
        result = workflow.create(
            transfer_draft(
                (world.widget_id, "2"),
                (world.gadget_id, "1"),
                notes="restock north",
                staff_user_id=staff,
            )
        )

        transfer = session.get(StockTransfer, result.transfer_id)
        assert transfer.source_warehouse_id == world.main_id
        assert transfer.destination_warehouse_id == world.north_id
        assert transfer.notes == "restock north"
        assert transfer.staff_user_id == staff
        lines = session.execute(
            select(StockTransferLine)
            .where(StockTransferLine.transfer_id == result.transfer_id)
            .order_by(StockTransferLine.line_no)
        ).scalars().all()
        assert [(line.line_no, line.product_id) for line in lines] == [
            (1, world.widget_id),
            (2, world.gadget_id),
        ]

    def test_references_increment(self, workflow, transfer_draft, world):
        first = workflow.create(transfer_draft())
        second = workflow.create(transfer_draft((world.gadget_id, "1")))
        assert first.reference_number == "TR-MAI012024-0001"
        assert second.reference_number == "TR-MAI012024-0002"

    def test_may_take_source_negative(self, workflow, transfer_draft, stock, world):
        workflow.create(transfer_draft((world.widget_id, "60")))
        assert stock(world.widget_id, world.main_id) == Decimal("-10")

    def test_sets_reference_in_log_context(self, workflow, transfer_draft, captured_logs):
        result = workflow.create(transfer_draft())
        created = [r for r in captured_logs() if r["message"] == "stock_transfer_created"]
        assert created[0]["reference_id"] == str(result.transfer_id)
        assert created[0]["reference_number"] == result.reference_number


class TestValidation:
    def test_same_warehouse(self, workflow, transfer_draft, session, world):
        with pytest.raises(SameWarehouseTransferError):
            workflow.create(transfer_draft(destination_warehouse_id=world.main_id))
        assert _count(session, StockTransfer) == 0
        assert _count(session, SequenceCounter) == 0

    def test_no_lines(self, workflow, transfer_draft):
        with pytest.raises(EmptyTransferError):
            workflow.create(transfer_draft(lines=()))

    @pytest.mark.parametrize(
        "field",
        ["company_id", "source_warehouse_id", "destination_warehouse_id", "transfer_date"],
    )
    def test_missing_field(self, workflow, transfer_draft, field):
        with pytest.raises(MissingFieldError):
            workflow.create(transfer_draft(**{field: None}))

    @pytest.mark.parametrize("quantity", [Decimal("0"), Decimal("-1"), None])
    def test_bad_line_quantity(self, workflow, transfer_draft, world, quantity):
        line = TransferLineRequest(product_id=world.widget_id, quantity=quantity)
        with pytest.raises(InvalidQuantityError) as exc_info:
            workflow.create(transfer_draft(lines=(line,)))
        assert exc_info.value.field_name == "transfer line quantity"

    def test_line_without_product(self, workflow, transfer_draft):
        line = TransferLineRequest(product_id=None, quantity=Decimal("1"))
        with pytest.raises(MissingFieldError):
            workflow.create(transfer_draft(lines=(line,)))

    def test_unknown_destination(self, workflow, transfer_draft):
        with pytest.raises(WarehouseNotFoundError):
            workflow.create(transfer_draft(destination_warehouse_id=uuid4()))

    def test_destination_of_other_company(self, workflow, transfer_draft, world):
        with pytest.raises(CompanyMismatchError) as exc_info:
            workflow.create(transfer_draft(destination_warehouse_id=world.foreign_id))
        assert exc_info.value.entity == "Destination warehouse"

    def test_inactive_product(self, workflow, transfer_draft, world):
        with pytest.raises(ProductNotFoundError):
            workflow.create(transfer_draft((world.widget_id, "1"), (world.inactive_id, "1")))

    def test_product_of_other_company(self, workflow, transfer_draft, world):
        with pytest.raises(CompanyMismatchError) as exc_info:
            workflow.create(transfer_draft((world.foreign_product_id, "1")))
        assert exc_info.value.entity == "Product"

    def test_missing_stock_level_writes_nothing(self, workflow, transfer_draft, session, stock, world):
        with pytest.raises(StockLevelNotFoundError):
            workflow.create(transfer_draft((world.widget_id, "5"), (world.unstocked_id, "1")))

        assert stock(world.widget_id, world.main_id) == Decimal("50")
        assert _count(session, StockTransfer) == 0

    def test_draft_date_drives_reference(self, workflow, transfer_draft):
        result = workflow.create(transfer_draft(transfer_date=date(2025, 7, 4)))
        assert result.reference_number == "TR-MAI072025-0001"
