"""
StockAdjustmentWorkflow -- create, edit and delete manual stock corrections.

Responsibility:
    Keeps each adjustment's stock effect (+quantity for ADD, -quantity for
    SUBTRACT) reflected in the stock level through StockMovementEngine:

        create:  apply +effect                       (kind ADJUSTMENT)
        update:  apply new_effect - old_effect once  (kind ADJUSTMENT, skipped if 0)
        move:    apply -old_effect at the old key and +new_effect at the new one
        delete:  apply -effect                       (kind ADJUSTMENT_REVERSAL)

Architecture position:
    Kernel > Services.  Called by TransactionCoordinator.

Invariants enforced:
    - After create -> update* -> delete the stock level is back where it
      started, and the movements for the adjustment sum to zero.
    - Moving an adjustment to another product or warehouse leaves both
      stock levels as if it had always been recorded at the new one.
    - An adjustment whose is_deletable flag is cleared can be neither
      edited nor deleted.
    - Every precondition is checked, and the stock level row locked,
      before the first write.

Failure modes:
    - InvalidQuantityError, MissingFieldError, CompanyMismatchError.
    - ProductNotFoundError, WarehouseNotFoundError, StockLevelNotFoundError,
      AdjustmentNotFoundError.
    - AdjustmentLockedError (update), AdjustmentNotDeletableError (delete).
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import (
    AdjustmentDraft,
    AdjustmentPatch,
    AdjustmentResult,
    StockKey,
)
from ledger_kernel.domain.values import (
    AdjustmentDirection,
    MovementKind,
    ReferenceType,
    parse_enum,
)
from ledger_kernel.exceptions import (
    AdjustmentLockedError,
    AdjustmentNotDeletableError,
    AdjustmentNotFoundError,
    CompanyMismatchError,
    InvalidQuantityError,
    MissingFieldError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.stock import StockAdjustment
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.directory import (
    Catalog,
    SqlCatalog,
    SqlWarehouseDirectory,
    WarehouseDirectory,
)
from ledger_kernel.services.stock_movement_engine import StockMovementEngine

logger = get_logger("services.stock_adjustment")


class StockAdjustmentWorkflow(BaseService):
    def __init__(
        self,
        session: Session,
        clock: Clock,
        catalog: Catalog | None = None,
        warehouses: WarehouseDirectory | None = None,
        engine: StockMovementEngine | None = None,
    ):
        super().__init__(session)
        self._clock = clock
        self._catalog = catalog or SqlCatalog(session)
        self._warehouses = warehouses or SqlWarehouseDirectory(session)
        self._engine = engine or StockMovementEngine(session, clock)

    def _lock(self, adjustment_id: UUID) -> StockAdjustment:
        adjustment = self.session.execute(
            select(StockAdjustment)
            .where(StockAdjustment.id == adjustment_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if adjustment is None:
            raise AdjustmentNotFoundError(str(adjustment_id))
        return adjustment

    def create(self, draft: AdjustmentDraft) -> AdjustmentResult:
        """
        Record an adjustment and move stock by its effect.

        Preconditions:
            - quantity > 0; product active; warehouse exists and belongs to
              draft.company_id; a stock level exists for the key.
        """
        for name in ("company_id", "warehouse_id", "product_id", "direction", "quantity"):
            if getattr(draft, name) is None:
                raise MissingFieldError(name, context="stock adjustment")
        direction = parse_enum(AdjustmentDirection, draft.direction)
        if draft.quantity <= 0:
            raise InvalidQuantityError(draft.quantity)

        product = self._catalog.require_active_product(draft.product_id)
        warehouse = self._warehouses.require_warehouse(draft.warehouse_id)
        if warehouse.company_id != draft.company_id:
            raise CompanyMismatchError(
                str(draft.company_id), str(warehouse.company_id), "Warehouse"
            )
        if product.company_id != draft.company_id:
            raise CompanyMismatchError(
                str(draft.company_id), str(product.company_id), "Product"
            )
        self._engine.lock_levels([StockKey(draft.product_id, draft.warehouse_id)])

        adjustment = StockAdjustment(
            company_id=draft.company_id,
            warehouse_id=draft.warehouse_id,
            product_id=draft.product_id,
            direction=direction,
            quantity=draft.quantity,
            notes=draft.notes,
            created_by=draft.created_by,
            is_deletable=True,
            created_at=self._clock.now_utc(),
        )
        self.session.add(adjustment)
        self.session.flush()

        effect = direction.signed(draft.quantity)
        movement = self._engine.apply_movement(
            product_id=draft.product_id,
            warehouse_id=draft.warehouse_id,
            quantity=effect,
            kind=MovementKind.ADJUSTMENT,
            reference_id=adjustment.id,
            reference_type=ReferenceType.STOCK_ADJUSTMENT,
            remarks=draft.notes,
        )
        logger.info(
            "stock_adjustment_created",
            extra={
                "adjustment_id": str(adjustment.id),
                "direction": direction.value,
                "quantity": draft.quantity,
            },
        )
        return AdjustmentResult(
            adjustment_id=adjustment.id,
            direction=direction,
            quantity=draft.quantity,
            stock_delta=effect,
            current_stock=movement.current_stock,
            movement_id=movement.movement_id,
        )

    def update(self, adjustment_id: UUID, patch: AdjustmentPatch) -> AdjustmentResult:
        """
        Apply a partial update, moving stock by the net change in effect only.

        A patch that leaves the effect unchanged (for example notes only)
        writes no movement.  A patch that changes the warehouse or product
        takes the old effect back out of the old stock level and applies the
        new effect to the new one, so both levels stay consistent.
        """
        for name in ("warehouse_id", "product_id", "direction", "quantity"):
            if patch.is_set(name) and getattr(patch, name) is None:
                raise MissingFieldError(name, context="stock adjustment update")
        if patch.is_set("quantity") and patch.quantity <= 0:
            raise InvalidQuantityError(patch.quantity)
        new_direction = (
            parse_enum(AdjustmentDirection, patch.direction)
            if patch.is_set("direction")
            else None
        )

        adjustment = self._lock(adjustment_id)
        if not adjustment.is_deletable:
            raise AdjustmentLockedError(str(adjustment_id))

        old_key = StockKey(adjustment.product_id, adjustment.warehouse_id)
        new_key = StockKey(
            patch.product_id if patch.is_set("product_id") else adjustment.product_id,
            patch.warehouse_id if patch.is_set("warehouse_id") else adjustment.warehouse_id,
        )
        relocated = new_key != old_key
        if relocated:
            self._check_target(adjustment.company_id, new_key)

        old_effect = adjustment.stock_effect
        direction = new_direction or AdjustmentDirection(adjustment.direction)
        quantity = patch.quantity if patch.is_set("quantity") else adjustment.quantity
        new_effect = direction.signed(quantity)
        delta = new_effect - old_effect

        if relocated:
            self._engine.lock_levels([old_key, new_key])
        elif delta != 0:
            self._engine.lock_levels([old_key])

        adjustment.product_id = new_key.product_id
        adjustment.warehouse_id = new_key.warehouse_id
        adjustment.direction = direction
        adjustment.quantity = quantity
        if patch.is_set("notes"):
            adjustment.notes = patch.notes
        adjustment.updated_at = self._clock.now_utc()
        self.session.flush()

        movement = None
        if relocated:
            self._engine.apply_movement(
                product_id=old_key.product_id,
                warehouse_id=old_key.warehouse_id,
                quantity=-old_effect,
                kind=MovementKind.ADJUSTMENT,
                reference_id=adjustment.id,
                reference_type=ReferenceType.STOCK_ADJUSTMENT,
                remarks="adjustment moved out",
            )
            movement = self._engine.apply_movement(
                product_id=new_key.product_id,
                warehouse_id=new_key.warehouse_id,
                quantity=new_effect,
                kind=MovementKind.ADJUSTMENT,
                reference_id=adjustment.id,
                reference_type=ReferenceType.STOCK_ADJUSTMENT,
                remarks="adjustment moved in",
            )
            # The new stock level sees the whole effect
            delta = new_effect
        elif delta != 0:
            movement = self._engine.apply_movement(
                product_id=adjustment.product_id,
                warehouse_id=adjustment.warehouse_id,
                quantity=delta,
                kind=MovementKind.ADJUSTMENT,
                reference_id=adjustment.id,
                reference_type=ReferenceType.STOCK_ADJUSTMENT,
                remarks="adjustment updated",
            )

        logger.info(
            "stock_adjustment_updated",
            extra={
                "adjustment_id": str(adjustment_id),
                "changed_fields": sorted(patch.changes()),
                "stock_delta": delta,
                "relocated": relocated,
            },
        )
        return AdjustmentResult(
            adjustment_id=adjustment.id,
            direction=direction,
            quantity=quantity,
            stock_delta=delta,
            current_stock=movement.current_stock if movement else None,
            movement_id=movement.movement_id if movement else None,
        )

    def _check_target(self, company_id: UUID, key: StockKey) -> None:
        product = self._catalog.require_active_product(key.product_id)
        warehouse = self._warehouses.require_warehouse(key.warehouse_id)
        if warehouse.company_id != company_id:
            raise CompanyMismatchError(str(company_id), str(warehouse.company_id), "Warehouse")
        if product.company_id != company_id:
            raise CompanyMismatchError(str(company_id), str(product.company_id), "Product")

    def delete(self, adjustment_id: UUID) -> AdjustmentResult:
        """Reverse the adjustment's effect with a new movement and remove it."""
        adjustment = self._lock(adjustment_id)
        if not adjustment.is_deletable:
            raise AdjustmentNotDeletableError(str(adjustment_id))

        self._engine.lock_levels([StockKey(adjustment.product_id, adjustment.warehouse_id)])
        reversal = -adjustment.stock_effect
        movement = self._engine.apply_movement(
            product_id=adjustment.product_id,
            warehouse_id=adjustment.warehouse_id,
            quantity=reversal,
            kind=MovementKind.ADJUSTMENT_REVERSAL,
            reference_id=adjustment.id,
            reference_type=ReferenceType.STOCK_ADJUSTMENT,
            remarks="adjustment deleted",
        )
        direction = AdjustmentDirection(adjustment.direction)
        quantity = adjustment.quantity
        self.session.delete(adjustment)
        self.session.flush()

        logger.info(
            "stock_adjustment_deleted",
            extra={"adjustment_id": str(adjustment_id), "stock_delta": reversal},
        )
        return AdjustmentResult(
            adjustment_id=adjustment_id,
            direction=direction,
            quantity=quantity,
            stock_delta=reversal,
            current_stock=movement.current_stock,
            movement_id=movement.movement_id,
        )

    def mark_referenced(self, adjustment_id: UUID) -> None:
        """Freeze an adjustment once another record depends on it."""
        adjustment = self._lock(adjustment_id)
        if adjustment.is_deletable:
            adjustment.is_deletable = False
            adjustment.updated_at = self._clock.now_utc()
            self.session.flush()
            logger.info(
                "stock_adjustment_frozen",
                extra={"adjustment_id": str(adjustment_id)},
            )
