"""
StockTransferWorkflow -- moves goods between two warehouses of one company.

Responsibility:
    Records a transfer with its lines and, per line, a TRANSFER_OUT of -q at
    the source and a TRANSFER_IN of +q at the destination, both referencing
    the transfer.  The transfer reference is allocated by NumberingService.

Architecture position:
    Kernel > Services.  Called by TransactionCoordinator.

Invariants enforced:
    - Every precondition (lines present, positive quantities, distinct
      warehouses, same company, products resolvable) is checked before
      the first write.
    - Every stock level the transfer touches is locked, in key order,
      before the first write; a missing level aborts the whole transfer.
    - For every line, the source loses exactly what the destination gains.

Failure modes:
    - EmptyTransferError, InvalidQuantityError, SameWarehouseTransferError,
      CompanyMismatchError, MissingFieldError.
    - WarehouseNotFoundError, ProductNotFoundError, StockLevelNotFoundError.
    - NumberingError only under NumberingFailurePolicy.FAIL_HARD.
"""

from decimal import Decimal

from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import StockKey, TransferDraft, TransferResult
from ledger_kernel.domain.policies import LedgerPolicies
from ledger_kernel.domain.values import MovementKind, ReferenceType
from ledger_kernel.exceptions import (
    CompanyMismatchError,
    EmptyTransferError,
    InvalidQuantityError,
    MissingFieldError,
    SameWarehouseTransferError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.stock import StockTransfer, StockTransferLine
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.directory import (
    Catalog,
    SqlCatalog,
    SqlWarehouseDirectory,
    WarehouseDirectory,
)
from ledger_kernel.services.numbering_service import NumberingService
from ledger_kernel.services.stock_movement_engine import StockMovementEngine

logger = get_logger("services.stock_transfer")


class StockTransferWorkflow(BaseService):
    def __init__(
        self,
        session: Session,
        clock: Clock,
        policies: LedgerPolicies | None = None,
        catalog: Catalog | None = None,
        warehouses: WarehouseDirectory | None = None,
        engine: StockMovementEngine | None = None,
        numbering: NumberingService | None = None,
    ):
        super().__init__(session)
        self._clock = clock
        self._policies = policies or LedgerPolicies()
        self._catalog = catalog or SqlCatalog(session)
        self._warehouses = warehouses or SqlWarehouseDirectory(session)
        self._engine = engine or StockMovementEngine(session, clock)
        self.numbering = numbering or NumberingService(
            session, clock, self._warehouses, self._policies
        )

    def _validate(self, draft: TransferDraft) -> None:
        for name in (
            "company_id",
            "source_warehouse_id",
            "destination_warehouse_id",
            "transfer_date",
        ):
            if getattr(draft, name) is None:
                raise MissingFieldError(name, context="stock transfer")
        if not draft.lines:
            raise EmptyTransferError()
        for line in draft.lines:
            if line.product_id is None:
                raise MissingFieldError("product_id", context="transfer line")
            if line.quantity is None or line.quantity <= 0:
                raise InvalidQuantityError(line.quantity, field_name="transfer line quantity")
        if draft.source_warehouse_id == draft.destination_warehouse_id:
            raise SameWarehouseTransferError(str(draft.source_warehouse_id))

        source = self._warehouses.require_warehouse(draft.source_warehouse_id)
        destination = self._warehouses.require_warehouse(draft.destination_warehouse_id)
        for warehouse, entity in ((source, "Source warehouse"), (destination, "Destination warehouse")):
            if warehouse.company_id != draft.company_id:
                raise CompanyMismatchError(
                    str(draft.company_id), str(warehouse.company_id), entity
                )
        for line in draft.lines:
            product = self._catalog.require_active_product(line.product_id)
            if product.company_id != draft.company_id:
                raise CompanyMismatchError(
                    str(draft.company_id), str(product.company_id), "Product"
                )

    def create(self, draft: TransferDraft) -> TransferResult:
        """
        Record a transfer and move every line's stock.

        Postconditions:
            - For each line, stock at the source fell by q and stock at the
              destination rose by q, via two movements referencing the
              transfer.
        """
        self._validate(draft)

        keys = []
        for line in draft.lines:
            keys.append(StockKey(line.product_id, draft.source_warehouse_id))
            keys.append(StockKey(line.product_id, draft.destination_warehouse_id))
        self._engine.lock_levels(keys)

        reference = self.numbering.next_transfer_reference(
            draft.source_warehouse_id, draft.transfer_date
        )
        total_quantity = sum((line.quantity for line in draft.lines), Decimal("0"))

        transfer = StockTransfer(
            company_id=draft.company_id,
            source_warehouse_id=draft.source_warehouse_id,
            destination_warehouse_id=draft.destination_warehouse_id,
            reference_number=reference,
            transfer_date=draft.transfer_date,
            notes=draft.notes,
            staff_user_id=draft.staff_user_id,
            total_items=len(draft.lines),
            total_quantity=total_quantity,
            created_at=self._clock.now_utc(),
        )
        self.session.add(transfer)
        self.session.flush()
        LogContext.set(reference_id=str(transfer.id))

        movement_ids = []
        for line_no, line in enumerate(draft.lines, start=1):
            self.session.add(
                StockTransferLine(
                    transfer_id=transfer.id,
                    line_no=line_no,
                    product_id=line.product_id,
                    quantity=line.quantity,
                )
            )
            outgoing = self._engine.apply_movement(
                product_id=line.product_id,
                warehouse_id=draft.source_warehouse_id,
                quantity=-line.quantity,
                kind=MovementKind.TRANSFER_OUT,
                reference_id=transfer.id,
                reference_type=ReferenceType.STOCK_TRANSFER,
                remarks=f"Transfer {reference}",
            )
            incoming = self._engine.apply_movement(
                product_id=line.product_id,
                warehouse_id=draft.destination_warehouse_id,
                quantity=line.quantity,
                kind=MovementKind.TRANSFER_IN,
                reference_id=transfer.id,
                reference_type=ReferenceType.STOCK_TRANSFER,
                remarks=f"Transfer {reference}",
            )
            movement_ids.extend((outgoing.movement_id, incoming.movement_id))
        self.session.flush()

        logger.info(
            "stock_transfer_created",
            extra={
                "transfer_id": str(transfer.id),
                "reference_number": reference,
                "source_warehouse_id": str(draft.source_warehouse_id),
                "destination_warehouse_id": str(draft.destination_warehouse_id),
                "total_items": len(draft.lines),
                "total_quantity": total_quantity,
            },
        )
        return TransferResult(
            transfer_id=transfer.id,
            reference_number=reference,
            total_items=len(draft.lines),
            total_quantity=total_quantity,
            movement_ids=tuple(movement_ids),
        )
