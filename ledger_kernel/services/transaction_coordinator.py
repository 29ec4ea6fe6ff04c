"""
TransactionCoordinator -- the transaction boundary of every ledger operation.

Responsibility:
    Opens one session per top-level operation from the injected session
    factory, wires the services for that session, and commits on success
    or rolls back on any exception.  This is the only place in the kernel
    that commits.

Architecture position:
    Kernel > Services.  Called by the HTTP boundary and scripts.  Every
    service below it flushes within the transaction it is handed.

Invariants enforced:
    - A top-level operation is all-or-nothing: a payment with its links
      and order projections, an adjustment with its movement, a transfer
      with all of its movements.
    - A duplicate payment result leaves the database untouched (the
      transaction is rolled back, not committed).
    - The session is always closed, releasing its pooled connection.

Failure modes:
    - Whatever the service raised, after rollback.  The rollback itself is
      logged as ``transaction_rolled_back`` with the traceback.
"""

from collections.abc import Callable, Generator
from contextlib import contextmanager
from uuid import UUID, uuid4

from sqlalchemy.orm import Session, sessionmaker

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import (
    AdjustmentDraft,
    AdjustmentPatch,
    AdjustmentResult,
    OrderBalance,
    OrderLinkRequest,
    PaymentDeletion,
    PaymentDraft,
    PaymentResult,
    TransferDraft,
    TransferResult,
)
from ledger_kernel.domain.policies import LedgerPolicies
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.services.directory import (
    Catalog,
    SqlCatalog,
    SqlWarehouseDirectory,
    WarehouseDirectory,
)
from ledger_kernel.services.duplicate_guard import (
    DuplicateGuard,
    SchemaProbe,
    SqlSchemaProbe,
)
from ledger_kernel.services.numbering_service import NumberingService
from ledger_kernel.services.order_status_projector import OrderStatusProjector
from ledger_kernel.services.payment_reconciliation import PaymentReconciliationService
from ledger_kernel.services.stock_adjustment_workflow import StockAdjustmentWorkflow
from ledger_kernel.services.stock_movement_engine import StockMovementEngine
from ledger_kernel.services.stock_transfer_workflow import StockTransferWorkflow

logger = get_logger("services.transaction_coordinator")

_ROLLBACK_ONLY = "ledger_rollback_only"


class TransactionCoordinator:
    """
    Facade over the write-side services, one unit of work per call.

    Args:
        session_factory: Creates the session for each unit of work.
        clock: Clock for timestamps.  Defaults to SystemClock.
        policies: Tolerances, windows and failure policies.
        catalog_factory: Builds the product catalog for a session.
        warehouse_factory: Builds the warehouse directory for a session.
        schema_probe: Shared across units of work so the schema is
            inspected once.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        policies: LedgerPolicies | None = None,
        catalog_factory: Callable[[Session], Catalog] | None = None,
        warehouse_factory: Callable[[Session], WarehouseDirectory] | None = None,
        schema_probe: SchemaProbe | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._policies = policies or LedgerPolicies()
        self._catalog_factory = catalog_factory or SqlCatalog
        self._warehouse_factory = warehouse_factory or SqlWarehouseDirectory
        self._schema_probe = schema_probe or SqlSchemaProbe()

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def policies(self) -> LedgerPolicies:
        return self._policies

    @contextmanager
    def unit_of_work(self, operation: str) -> Generator[Session, None, None]:
        """
        One transaction: commit on success, rollback on exception (re-raised).

        Code inside the block can call ``discard(session)`` to roll back
        instead of committing without raising.
        """
        session = self._session_factory()
        correlation_id = LogContext.get_all().get("correlation_id") or str(uuid4())
        with LogContext.bind(operation=operation, correlation_id=correlation_id):
            logger.debug("transaction_started")
            try:
                yield session
                if session.info.pop(_ROLLBACK_ONLY, False):
                    session.rollback()
                    logger.debug("transaction_discarded")
                else:
                    session.commit()
                    logger.debug("transaction_committed")
            except Exception:
                session.rollback()
                logger.warning("transaction_rolled_back", exc_info=True)
                raise
            finally:
                session.close()

    @staticmethod
    def discard(session: Session) -> None:
        """Mark the current unit of work to roll back on a normal exit."""
        session.info[_ROLLBACK_ONLY] = True

    # ------------------------------------------------------------------
    # Service wiring
    # ------------------------------------------------------------------

    def _payments(self, session: Session) -> PaymentReconciliationService:
        warehouses = self._warehouse_factory(session)
        return PaymentReconciliationService(
            session,
            self._clock,
            self._policies,
            warehouses=warehouses,
            guard=DuplicateGuard(
                session, self._clock, self._policies, schema_probe=self._schema_probe
            ),
            numbering=NumberingService(session, self._clock, warehouses, self._policies),
            projector=OrderStatusProjector(session, self._clock, self._policies),
        )

    def _adjustments(self, session: Session) -> StockAdjustmentWorkflow:
        return StockAdjustmentWorkflow(
            session,
            self._clock,
            catalog=self._catalog_factory(session),
            warehouses=self._warehouse_factory(session),
            engine=StockMovementEngine(session, self._clock),
        )

    def _transfers(self, session: Session) -> StockTransferWorkflow:
        return StockTransferWorkflow(
            session,
            self._clock,
            self._policies,
            catalog=self._catalog_factory(session),
            warehouses=self._warehouse_factory(session),
            engine=StockMovementEngine(session, self._clock),
        )

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def create_payment(
        self,
        draft: PaymentDraft,
        order_links: list[OrderLinkRequest] | tuple[OrderLinkRequest, ...] = (),
        idempotency_key: str | None = None,
    ) -> PaymentResult:
        with self.unit_of_work("create_payment") as session:
            result = self._payments(session).create_payment(
                draft, order_links, idempotency_key=idempotency_key
            )
            if result.is_duplicate:
                self.discard(session)
            return result

    def create_order_payment(
        self,
        draft: PaymentDraft,
        order_id: UUID,
        idempotency_key: str | None = None,
        remarks: str | None = None,
    ) -> PaymentResult:
        with self.unit_of_work("create_order_payment") as session:
            result = self._payments(session).create_order_payment(
                draft, order_id, idempotency_key=idempotency_key, remarks=remarks
            )
            if result.is_duplicate:
                self.discard(session)
            return result

    def delete_payment(self, payment_id: UUID) -> PaymentDeletion:
        with self.unit_of_work("delete_payment") as session:
            return self._payments(session).delete_payment(payment_id)

    def project_order(self, order_id: UUID) -> OrderBalance | None:
        with self.unit_of_work("project_order") as session:
            return OrderStatusProjector(session, self._clock, self._policies).project(order_id)

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------

    def create_adjustment(self, draft: AdjustmentDraft) -> AdjustmentResult:
        with self.unit_of_work("create_adjustment") as session:
            return self._adjustments(session).create(draft)

    def update_adjustment(
        self,
        adjustment_id: UUID,
        patch: AdjustmentPatch,
    ) -> AdjustmentResult:
        with self.unit_of_work("update_adjustment") as session:
            return self._adjustments(session).update(adjustment_id, patch)

    def delete_adjustment(self, adjustment_id: UUID) -> AdjustmentResult:
        with self.unit_of_work("delete_adjustment") as session:
            return self._adjustments(session).delete(adjustment_id)

    def mark_adjustment_referenced(self, adjustment_id: UUID) -> None:
        with self.unit_of_work("mark_adjustment_referenced") as session:
            self._adjustments(session).mark_referenced(adjustment_id)

    def create_transfer(self, draft: TransferDraft) -> TransferResult:
        with self.unit_of_work("create_transfer") as session:
            return self._transfers(session).create(draft)
