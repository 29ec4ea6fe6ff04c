"""
PaymentReconciliationService -- records payments and applies them to orders.

Responsibility:
    Creates a payment exactly once per logical submission, links it to the
    orders it pays, and re-projects those orders' balances.  Deletes a
    payment together with its links and re-projects the orders it had
    paid.

Architecture position:
    Kernel > Services.  Called by TransactionCoordinator, which supplies
    the session and owns commit/rollback.

    create_payment pipeline:
        validate draft (no I/O)
        -> DuplicateGuard.find_duplicate   (duplicate: return, nothing written)
        -> lock referenced orders          (missing or deleted: OrderNotFoundError)
        -> NumberingService.next_payment_number
        -> INSERT payment (savepoint)      (key collision: recovered as duplicate)
        -> INSERT links, skipping (order, payment) pairs that already exist
        -> OrderStatusProjector.project, once per distinct order

Invariants enforced:
    - Validation happens before the first write.
    - For every order touched, paid_amount equals the sum of its links
      when the transaction commits.
    - An (order, payment) pair is linked at most once; repeats within one
      request or against existing rows are skipped silently.
    - Each distinct order is projected once, in first-seen order.

Failure modes:
    - LedgerValidationError subclasses for a malformed draft or link.
    - OrderNotFoundError for a missing or soft-deleted order.
    - PaymentNotFoundError on delete of a missing payment.
    - DuplicateCheckUnavailableError / NumberingError only under the
      corresponding fail-closed / fail-hard policies.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import (
    OrderLinkRequest,
    PaymentDeletion,
    PaymentDraft,
    PaymentResult,
)
from ledger_kernel.domain.policies import LedgerPolicies
from ledger_kernel.exceptions import (
    InvalidAmountError,
    MissingFieldError,
    OrderNotFoundError,
    PaymentNotFoundError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.payment import OrderPaymentLink, Payment
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.directory import SqlWarehouseDirectory, WarehouseDirectory
from ledger_kernel.services.duplicate_guard import DuplicateGuard
from ledger_kernel.services.numbering_service import NumberingService
from ledger_kernel.services.order_status_projector import OrderStatusProjector

logger = get_logger("services.payment_reconciliation")


def validate_payment_draft(draft: PaymentDraft) -> None:
    """Reject drafts that cannot be recorded.  Pure; raises before any I/O."""
    for name in ("company_id", "warehouse_id", "direction", "payment_date", "amount"):
        if getattr(draft, name) is None:
            raise MissingFieldError(name, context="payment")
    if draft.amount <= 0:
        raise InvalidAmountError(draft.amount)


def validate_order_links(links: list[OrderLinkRequest]) -> None:
    for link in links:
        if link.order_id is None:
            raise MissingFieldError("order_id", context="order link")
        if link.amount is None:
            raise MissingFieldError("amount", context="order link")
        if link.amount <= 0:
            raise InvalidAmountError(link.amount, field_name="order link amount")


class PaymentReconciliationService(BaseService):
    def __init__(
        self,
        session: Session,
        clock: Clock,
        policies: LedgerPolicies | None = None,
        warehouses: WarehouseDirectory | None = None,
        guard: DuplicateGuard | None = None,
        numbering: NumberingService | None = None,
        projector: OrderStatusProjector | None = None,
    ):
        super().__init__(session)
        self._clock = clock
        self._policies = policies or LedgerPolicies()
        warehouses = warehouses or SqlWarehouseDirectory(session)
        self.guard = guard or DuplicateGuard(session, clock, self._policies)
        self.numbering = numbering or NumberingService(
            session, clock, warehouses, self._policies
        )
        self.projector = projector or OrderStatusProjector(session, clock, self._policies)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_payment(
        self,
        draft: PaymentDraft,
        order_links: list[OrderLinkRequest] | tuple[OrderLinkRequest, ...] = (),
        idempotency_key: str | None = None,
    ) -> PaymentResult:
        """
        Record a payment and apply it to orders.

        Preconditions:
            - draft.amount > 0 and every link amount > 0.
            - Every referenced order exists and is not soft-deleted.
        Postconditions:
            - Either a duplicate result (nothing written) or one new payment,
              its new links, and refreshed balances on every linked order.

        Args:
            draft: The payment as submitted.
            order_links: Orders to apply the payment to.
            idempotency_key: Client-supplied key identifying the submission.
        """
        links = list(order_links)
        validate_payment_draft(draft)
        validate_order_links(links)
        idempotency_key = (idempotency_key or "").strip() or None

        duplicate = self.guard.find_duplicate(draft, idempotency_key)
        if duplicate is not None:
            return PaymentResult.duplicate(duplicate)

        order_ids = _distinct(link.order_id for link in links)
        for order_id in sorted(order_ids, key=str):
            order = self.projector.lock_order(order_id)
            if order.is_deleted:
                raise OrderNotFoundError(str(order_id))

        payment_number = self.numbering.next_payment_number(
            draft.warehouse_id, draft.direction
        )

        payment = Payment(
            company_id=draft.company_id,
            warehouse_id=draft.warehouse_id,
            direction=draft.direction,
            payment_date=draft.payment_date,
            amount=draft.amount,
            payment_mode_id=draft.payment_mode_id,
            counterparty_id=draft.counterparty_id,
            notes=draft.notes,
            staff_user_id=draft.staff_user_id,
            idempotency_key=idempotency_key,
            payment_number=payment_number,
            created_at=self._clock.now_utc(),
        )
        try:
            with self.session.begin_nested():
                self.session.add(payment)
                self.session.flush()
        except IntegrityError:
            # A concurrent submission with the same key committed first
            if idempotency_key:
                existing = self.guard.find_by_key(idempotency_key)
                if existing is not None:
                    logger.info(
                        "duplicate_payment_detected",
                        extra={
                            "reason": existing.reason.value,
                            "existing_payment_id": str(existing.payment_id),
                            "payment_number": existing.payment_number,
                            "detected_at": "insert",
                        },
                    )
                    return PaymentResult.duplicate(existing)
            raise

        LogContext.set(payment_id=str(payment.id))
        linked, skipped = self._link_orders(payment, links)

        for order_id in order_ids:
            self.projector.project(order_id)

        logger.info(
            "payment_created",
            extra={
                "payment_id": str(payment.id),
                "payment_number": payment_number,
                "direction": draft.direction.value,
                "amount": draft.amount,
                "linked_orders": len(linked),
                "skipped_links": len(skipped),
            },
        )
        return PaymentResult(
            payment_id=payment.id,
            payment_number=payment_number,
            is_duplicate=False,
            linked_order_ids=tuple(linked),
            skipped_order_ids=tuple(skipped),
        )

    def create_order_payment(
        self,
        draft: PaymentDraft,
        order_id: UUID,
        idempotency_key: str | None = None,
        remarks: str | None = None,
    ) -> PaymentResult:
        """Pay a single order with the full payment amount."""
        if order_id is None:
            raise MissingFieldError("order_id", context="order payment")
        return self.create_payment(
            draft,
            [OrderLinkRequest(order_id=order_id, amount=draft.amount, remarks=remarks)],
            idempotency_key=idempotency_key,
        )

    def _link_orders(
        self,
        payment: Payment,
        links: list[OrderLinkRequest],
    ) -> tuple[list[UUID], list[UUID]]:
        linked: list[UUID] = []
        skipped: list[UUID] = []
        seen: set[UUID] = set()
        for link in links:
            exists = self.session.execute(
                select(OrderPaymentLink.id).where(
                    OrderPaymentLink.order_id == link.order_id,
                    OrderPaymentLink.payment_id == payment.id,
                )
            ).first()
            if link.order_id in seen or exists is not None:
                skipped.append(link.order_id)
                logger.debug(
                    "order_link_skipped",
                    extra={"order_id": str(link.order_id), "payment_id": str(payment.id)},
                )
                continue
            seen.add(link.order_id)
            self.session.add(
                OrderPaymentLink(
                    order_id=link.order_id,
                    payment_id=payment.id,
                    amount=link.amount,
                    link_date=payment.payment_date,
                    remarks=link.remarks,
                    created_at=self._clock.now_utc(),
                )
            )
            linked.append(link.order_id)
        self.session.flush()
        return linked, skipped

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete_payment(self, payment_id: UUID) -> PaymentDeletion:
        """
        Delete a payment and its links, then re-project the affected orders.

        Raises:
            PaymentNotFoundError: if the payment does not exist.
        """
        payment = self.session.execute(
            select(Payment)
            .where(Payment.id == payment_id)
            .with_for_update()
        ).scalar_one_or_none()
        if payment is None:
            raise PaymentNotFoundError(str(payment_id))

        links = self.session.execute(
            select(OrderPaymentLink)
            .where(OrderPaymentLink.payment_id == payment_id)
            .order_by(OrderPaymentLink.created_at, OrderPaymentLink.id)
        ).scalars().all()
        # Orders are re-projected in the order create_payment locks them
        order_ids = sorted({link.order_id for link in links}, key=str)

        for link in links:
            self.session.delete(link)
        self.session.flush()
        self.session.delete(payment)
        self.session.flush()

        for order_id in order_ids:
            self.projector.project(order_id)

        logger.info(
            "payment_deleted",
            extra={
                "payment_id": str(payment_id),
                "payment_number": payment.payment_number,
                "reprojected_orders": len(order_ids),
            },
        )
        return PaymentDeletion(
            payment_id=payment_id,
            payment_number=payment.payment_number,
            reprojected_order_ids=tuple(order_ids),
        )


def _distinct(ids) -> list[UUID]:
    """Distinct ids in first-seen order."""
    seen: set[UUID] = set()
    ordered: list[UUID] = []
    for item in ids:
        if item not in seen:
            seen.add(item)
            ordered.append(item)
    return ordered
