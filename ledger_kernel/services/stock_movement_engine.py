"""
StockMovementEngine -- the only writer of stock levels and stock movements.

Responsibility:
    Applies one signed quantity to the stock level of a (product, warehouse)
    and appends exactly one movement row describing why.  Every inventory
    workflow (adjustments, transfers, and order fulfilment outside the
    ledger) goes through ``apply_movement``.

Architecture position:
    Kernel > Services.  Called by StockAdjustmentWorkflow and
    StockTransferWorkflow inside the caller's transaction.

Invariants enforced:
    - current_stock == sum of movement quantities for the key: the level
      update and the movement insert happen together, in one transaction.
    - The level update is a single SQL increment
      (``current_stock = current_stock + :qty``), never read-modify-write
      in Python, so concurrent movements on one key cannot lose updates.
    - Stock level rows are never created here.
    - Movements are never edited; reversal is a new movement with the
      opposite sign.
    - Negative stock is allowed (overselling is represented, not prevented).

Failure modes:
    - StockLevelNotFoundError when no row exists for the key.  Raised
      before the movement row is written.
    - InvalidQuantityError for a zero quantity.
"""

from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import MovementResult, StockKey
from ledger_kernel.domain.values import MovementKind, ReferenceType
from ledger_kernel.exceptions import InvalidQuantityError, StockLevelNotFoundError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.stock import StockLevel, StockMovement
from ledger_kernel.services.base import BaseService

logger = get_logger("services.stock_movement")


class StockMovementEngine(BaseService):
    def __init__(self, session: Session, clock: Clock):
        super().__init__(session)
        self._clock = clock

    def lock_levels(self, keys: Iterable[StockKey]) -> dict[StockKey, Decimal]:
        """
        Lock the stock level rows for ``keys`` in deterministic order.

        Locking every row a multi-line operation will touch, sorted by key,
        before the first write prevents deadlocks between two operations
        touching the same rows, and surfaces a missing row before anything
        has been written.

        Returns:
            Current stock per key.

        Raises:
            StockLevelNotFoundError: for the first missing key.
        """
        levels: dict[StockKey, Decimal] = {}
        for key in sorted(set(keys), key=StockKey.sort_key):
            current = self.session.execute(
                select(StockLevel.current_stock)
                .where(
                    StockLevel.product_id == key.product_id,
                    StockLevel.warehouse_id == key.warehouse_id,
                )
                .with_for_update()
            ).scalar_one_or_none()
            if current is None:
                raise StockLevelNotFoundError(str(key.product_id), str(key.warehouse_id))
            levels[key] = current
        return levels

    def current_stock(self, product_id: UUID, warehouse_id: UUID) -> Decimal:
        """Current stock for a key; raises StockLevelNotFoundError if absent."""
        current = self.session.execute(
            select(StockLevel.current_stock).where(
                StockLevel.product_id == product_id,
                StockLevel.warehouse_id == warehouse_id,
            )
        ).scalar_one_or_none()
        if current is None:
            raise StockLevelNotFoundError(str(product_id), str(warehouse_id))
        return current

    def apply_movement(
        self,
        product_id: UUID,
        warehouse_id: UUID,
        quantity: Decimal,
        kind: MovementKind,
        reference_id: UUID | None = None,
        reference_type: ReferenceType | None = None,
        remarks: str | None = None,
    ) -> MovementResult:
        """
        Add ``quantity`` (signed) to the stock level and record the movement.

        Preconditions:
            - quantity != 0.
        Postconditions:
            - The stock level changed by exactly ``quantity``.
            - Exactly one StockMovement row was appended.
        """
        if quantity == 0:
            raise InvalidQuantityError(quantity, field_name="movement quantity", requirement="non-zero")

        result = self.session.execute(
            update(StockLevel)
            .where(
                StockLevel.product_id == product_id,
                StockLevel.warehouse_id == warehouse_id,
            )
            .values(current_stock=StockLevel.current_stock + quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning(
                "stock_level_missing",
                extra={
                    "product_id": str(product_id),
                    "warehouse_id": str(warehouse_id),
                    "kind": kind.value,
                },
            )
            raise StockLevelNotFoundError(str(product_id), str(warehouse_id))

        movement = StockMovement(
            product_id=product_id,
            warehouse_id=warehouse_id,
            quantity=quantity,
            kind=kind,
            reference_id=reference_id,
            reference_type=reference_type,
            remarks=remarks,
            created_at=self._clock.now_utc(),
        )
        self.session.add(movement)
        self.session.flush()

        new_stock = self.current_stock(product_id, warehouse_id)
        logger.info(
            "stock_movement_applied",
            extra={
                "movement_id": str(movement.id),
                "product_id": str(product_id),
                "warehouse_id": str(warehouse_id),
                "quantity": quantity,
                "kind": kind.value,
                "reference_id": str(reference_id) if reference_id else None,
                "current_stock": new_stock,
            },
        )
        return MovementResult(
            movement_id=movement.id,
            product_id=product_id,
            warehouse_id=warehouse_id,
            quantity=quantity,
            kind=kind,
            current_stock=new_stock,
        )
