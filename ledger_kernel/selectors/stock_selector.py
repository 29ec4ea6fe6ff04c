"""
Module: ledger_kernel.selectors.stock_selector
Responsibility: Read-only inventory queries: current stock, the movement
    history of a product, stock adjustments, and stock transfers with their
    lines.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Read-only.
    - Movement history is newest first; it is the audit trail behind every
      stock level.
"""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from ledger_kernel.domain.values import (
    AdjustmentDirection,
    MovementKind,
    ReferenceType,
)
from ledger_kernel.models.stock import (
    StockAdjustment,
    StockLevel,
    StockMovement,
    StockTransfer,
)
from ledger_kernel.selectors.base import DEFAULT_PAGE_SIZE, BaseSelector, Page

TRANSFER_SENT = "sent"
TRANSFER_RECEIVED = "received"


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=UTC)


@dataclass(frozen=True)
class MovementRecord:
    id: UUID
    product_id: UUID
    warehouse_id: UUID
    quantity: Decimal
    kind: MovementKind
    reference_id: UUID | None
    reference_type: ReferenceType | None
    remarks: str | None
    created_at: datetime


@dataclass(frozen=True)
class AdjustmentFilter:
    company_id: UUID | None = None
    warehouse_id: UUID | None = None
    product_id: UUID | None = None
    direction: AdjustmentDirection | None = None
    date_from: date | None = None
    date_to: date | None = None


@dataclass(frozen=True)
class AdjustmentRecord:
    id: UUID
    company_id: UUID
    warehouse_id: UUID
    product_id: UUID
    direction: AdjustmentDirection
    quantity: Decimal
    notes: str | None
    created_by: UUID | None
    is_deletable: bool
    created_at: datetime
    updated_at: datetime | None


@dataclass(frozen=True)
class TransferLineRecord:
    line_no: int
    product_id: UUID
    quantity: Decimal


@dataclass(frozen=True)
class TransferRecord:
    id: UUID
    reference_number: str
    company_id: UUID
    source_warehouse_id: UUID
    destination_warehouse_id: UUID
    transfer_date: date
    total_items: int
    total_quantity: Decimal
    notes: str | None
    staff_user_id: UUID | None
    created_at: datetime
    # "sent" or "received" relative to the warehouse a list was queried for
    role: str | None = None
    lines: list[TransferLineRecord] = field(default_factory=list)


def _movement(row: StockMovement) -> MovementRecord:
    return MovementRecord(
        id=row.id,
        product_id=row.product_id,
        warehouse_id=row.warehouse_id,
        quantity=row.quantity,
        kind=MovementKind(row.kind),
        reference_id=row.reference_id,
        reference_type=ReferenceType(row.reference_type) if row.reference_type else None,
        remarks=row.remarks,
        created_at=row.created_at,
    )


def _adjustment(row: StockAdjustment) -> AdjustmentRecord:
    return AdjustmentRecord(
        id=row.id,
        company_id=row.company_id,
        warehouse_id=row.warehouse_id,
        product_id=row.product_id,
        direction=AdjustmentDirection(row.direction),
        quantity=row.quantity,
        notes=row.notes,
        created_by=row.created_by,
        is_deletable=row.is_deletable,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _transfer(
    row: StockTransfer,
    role: str | None = None,
    with_lines: bool = False,
) -> TransferRecord:
    lines = []
    if with_lines:
        lines = [
            TransferLineRecord(line_no=line.line_no, product_id=line.product_id, quantity=line.quantity)
            for line in row.lines
        ]
    return TransferRecord(
        id=row.id,
        reference_number=row.reference_number,
        company_id=row.company_id,
        source_warehouse_id=row.source_warehouse_id,
        destination_warehouse_id=row.destination_warehouse_id,
        transfer_date=row.transfer_date,
        total_items=row.total_items,
        total_quantity=row.total_quantity,
        notes=row.notes,
        staff_user_id=row.staff_user_id,
        created_at=row.created_at,
        role=role,
        lines=lines,
    )


class StockSelector(BaseSelector[StockMovement]):
    def __init__(self, session: Session):
        super().__init__(session)

    def current_stock(self, product_id: UUID, warehouse_id: UUID) -> Decimal | None:
        """Stored stock level, or None if the key has never been stocked."""
        return self.session.execute(
            select(StockLevel.current_stock).where(
                StockLevel.product_id == product_id,
                StockLevel.warehouse_id == warehouse_id,
            )
        ).scalar_one_or_none()

    def stock_history(
        self,
        product_id: UUID,
        warehouse_id: UUID | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Page[MovementRecord]:
        stmt = select(StockMovement).where(StockMovement.product_id == product_id)
        if warehouse_id is not None:
            stmt = stmt.where(StockMovement.warehouse_id == warehouse_id)
        stmt = stmt.order_by(StockMovement.created_at.desc(), StockMovement.id)
        rows, page, limit, total = self._paginate(stmt, page, limit)
        return Page(items=[_movement(r[0]) for r in rows], page=page, limit=limit, total=total)

    def movements_for_reference(self, reference_id: UUID) -> list[MovementRecord]:
        """Every movement caused by one adjustment, transfer or order, oldest first."""
        rows = self.session.execute(
            select(StockMovement)
            .where(StockMovement.reference_id == reference_id)
            .order_by(StockMovement.created_at, StockMovement.id)
        ).scalars()
        return [_movement(r) for r in rows]

    def list_adjustments(
        self,
        criteria: AdjustmentFilter | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Page[AdjustmentRecord]:
        criteria = criteria or AdjustmentFilter()
        stmt = select(StockAdjustment)
        if criteria.company_id is not None:
            stmt = stmt.where(StockAdjustment.company_id == criteria.company_id)
        if criteria.warehouse_id is not None:
            stmt = stmt.where(StockAdjustment.warehouse_id == criteria.warehouse_id)
        if criteria.product_id is not None:
            stmt = stmt.where(StockAdjustment.product_id == criteria.product_id)
        if criteria.direction is not None:
            stmt = stmt.where(StockAdjustment.direction == criteria.direction)
        if criteria.date_from is not None:
            stmt = stmt.where(StockAdjustment.created_at >= _day_start(criteria.date_from))
        if criteria.date_to is not None:
            stmt = stmt.where(
                StockAdjustment.created_at < _day_start(criteria.date_to + timedelta(days=1))
            )
        stmt = stmt.order_by(StockAdjustment.created_at.desc(), StockAdjustment.id)
        rows, page, limit, total = self._paginate(stmt, page, limit)
        return Page(items=[_adjustment(r[0]) for r in rows], page=page, limit=limit, total=total)

    def get_adjustment(self, adjustment_id: UUID) -> AdjustmentRecord | None:
        row = self.session.get(StockAdjustment, adjustment_id)
        return _adjustment(row) if row is not None else None

    def list_transfers(
        self,
        warehouse_id: UUID | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Page[TransferRecord]:
        """
        Transfers newest first.  With ``warehouse_id``, only transfers it sent
        or received, each tagged with which.
        """
        stmt = select(StockTransfer)
        if warehouse_id is not None:
            stmt = stmt.where(
                or_(
                    StockTransfer.source_warehouse_id == warehouse_id,
                    StockTransfer.destination_warehouse_id == warehouse_id,
                )
            )
        if date_from is not None:
            stmt = stmt.where(StockTransfer.transfer_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(StockTransfer.transfer_date <= date_to)
        stmt = stmt.order_by(
            StockTransfer.transfer_date.desc(),
            StockTransfer.created_at.desc(),
            StockTransfer.id,
        )
        rows, page, limit, total = self._paginate(stmt, page, limit)

        items = []
        for (transfer,) in rows:
            role = None
            if warehouse_id is not None:
                role = (
                    TRANSFER_SENT
                    if transfer.source_warehouse_id == warehouse_id
                    else TRANSFER_RECEIVED
                )
            items.append(_transfer(transfer, role=role))
        return Page(items=items, page=page, limit=limit, total=total)

    def get_transfer(self, transfer_id: UUID) -> TransferRecord | None:
        transfer = self.session.execute(
            select(StockTransfer)
            .where(StockTransfer.id == transfer_id)
            .options(selectinload(StockTransfer.lines))
        ).scalar_one_or_none()
        if transfer is None:
            return None
        return _transfer(transfer, with_lines=True)
