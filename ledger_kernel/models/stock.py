"""
Module: ledger_kernel.models.stock
Responsibility: ORM persistence for inventory: the append-only movement
    ledger, the derived per-(product, warehouse) stock level, stock
    adjustments, and stock transfers with their lines.
Architecture position: Kernel > Models.  May import from db/ and
    domain/values.py only.

Invariants enforced:
    - stock_levels.current_stock == sum of stock_movements.quantity for the
      same (product_id, warehouse_id).  Maintained by StockMovementEngine,
      which is the only writer of either table.
    - stock_levels has exactly one row per (product_id, warehouse_id).
    - stock_movements rows are write-once (db/immutability.py).  A mistake
      is corrected by a new movement with the opposite sign.
    - stock_transfers.reference_number is UNIQUE.

Failure modes:
    - IntegrityError on a second stock level for the same key, or a
      duplicate transfer reference.
    - ImmutabilityViolationError on UPDATE/DELETE of a movement.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import Base, CreatedAtMixin, UUIDString
from ledger_kernel.domain.values import (
    AdjustmentDirection,
    MovementKind,
    ReferenceType,
)


class StockLevel(Base):
    """
    Current on-hand quantity of one product in one warehouse.

    Rows are provisioned by the product catalog when a product is stocked
    in a warehouse; the ledger never creates them.  Negative stock is
    representable.
    """

    __tablename__ = "stock_levels"

    __table_args__ = (
        UniqueConstraint("product_id", "warehouse_id", name="uq_stock_level_key"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    warehouse_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("warehouses.id"),
        nullable=False,
    )

    current_stock: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    def __repr__(self) -> str:
        return f"<StockLevel {self.product_id}@{self.warehouse_id}: {self.current_stock}>"


class StockMovement(CreatedAtMixin, Base):
    """
    One signed change to a stock level.

    ``reference_id``/``reference_type`` point at the adjustment, transfer
    or order that caused the movement.
    """

    __tablename__ = "stock_movements"

    __table_args__ = (
        Index("idx_movement_key", "product_id", "warehouse_id"),
        Index("idx_movement_reference", "reference_type", "reference_id"),
        Index("idx_movement_created_at", "created_at"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    warehouse_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("warehouses.id"),
        nullable=False,
    )

    # Signed: positive adds stock, negative removes it
    quantity: Mapped[Decimal] = mapped_column(nullable=False)

    kind: Mapped[MovementKind] = mapped_column(String(30), nullable=False)

    reference_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    reference_type: Mapped[ReferenceType | None] = mapped_column(
        String(30),
        nullable=True,
    )

    remarks: Mapped[str | None] = mapped_column(String(4000), nullable=True)


class StockAdjustment(CreatedAtMixin, Base):
    """
    A manual correction of one stock level.

    Its stock effect is ``+quantity`` for ADD and ``-quantity`` for
    SUBTRACT.  Once another subsystem references it, is_deletable is
    cleared and the adjustment can be neither edited nor deleted.
    """

    __tablename__ = "stock_adjustments"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_adjustment_quantity_positive"),
        Index("idx_adjustment_key", "product_id", "warehouse_id"),
        Index("idx_adjustment_company", "company_id"),
    )

    company_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    warehouse_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("warehouses.id"),
        nullable=False,
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    direction: Mapped[AdjustmentDirection] = mapped_column(String(10), nullable=False)

    quantity: Mapped[Decimal] = mapped_column(nullable=False)

    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    created_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    is_deletable: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    @property
    def stock_effect(self) -> Decimal:
        return AdjustmentDirection(self.direction).signed(self.quantity)


class StockTransfer(CreatedAtMixin, Base):
    """Movement of goods between two warehouses of the same company."""

    __tablename__ = "stock_transfers"

    __table_args__ = (
        UniqueConstraint("reference_number", name="uq_transfer_reference"),
        Index("idx_transfer_source", "source_warehouse_id", "transfer_date"),
        Index("idx_transfer_destination", "destination_warehouse_id", "transfer_date"),
    )

    company_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    source_warehouse_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("warehouses.id"),
        nullable=False,
    )

    destination_warehouse_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("warehouses.id"),
        nullable=False,
    )

    reference_number: Mapped[str] = mapped_column(String(50), nullable=False)

    transfer_date: Mapped[date] = mapped_column(Date, nullable=False)

    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    staff_user_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    total_items: Mapped[int] = mapped_column(Integer, nullable=False)

    total_quantity: Mapped[Decimal] = mapped_column(nullable=False)

    lines: Mapped[list["StockTransferLine"]] = relationship(
        back_populates="transfer",
        order_by="StockTransferLine.line_no",
    )


class StockTransferLine(Base):
    __tablename__ = "stock_transfer_lines"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_transfer_line_quantity_positive"),
        UniqueConstraint("transfer_id", "line_no", name="uq_transfer_line_no"),
    )

    transfer_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("stock_transfers.id"),
        nullable=False,
    )

    line_no: Mapped[int] = mapped_column(Integer, nullable=False)

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    quantity: Mapped[Decimal] = mapped_column(nullable=False)

    transfer: Mapped[StockTransfer] = relationship(back_populates="lines")
