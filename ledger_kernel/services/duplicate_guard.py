"""
DuplicateGuard -- detects resubmitted payments before anything is written.

Responsibility:
    Decides whether an incoming payment is a repeat of one already
    recorded, in two stages:

    1. Idempotency key: if the caller supplied a key and a payment carries
       the same key, it is a duplicate (reason IDEMPOTENCY_KEY).
    2. Similarity: otherwise, a payment with the same company, warehouse,
       direction, counterparty, payment mode and date, an amount within
       the tolerance (default 0.01), created within the window (default
       30 s), is a duplicate (reason SIMILARITY).  The most recent such
       payment is returned.

Architecture position:
    Kernel > Services.  Read-only; called first by
    PaymentReconciliationService.create_payment.

Invariants enforced:
    - The guard never writes.
    - A key match wins over a similarity match.

Failure modes (named policies, see domain/policies.py):
    - key_column_missing: the payments table has no idempotency_key column
      (a database not yet migrated).  FAIL_OPEN logs
      ``idempotency_column_missing`` and continues with the similarity
      stage; FAIL_CLOSED raises DuplicateCheckUnavailableError.
    - insufficient_data: the draft lacks a field the similarity stage
      compares.  FAIL_OPEN logs and treats the payment as new;
      FAIL_CLOSED raises DuplicateCheckUnavailableError.

    The similarity stage reads committed data only.  Two submissions
    without a key that run at the same moment can both pass it; only the
    key path is backed by a unique constraint.
"""

from datetime import timedelta
from typing import Protocol

from sqlalchemy import func, inspect, select
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import DuplicateMatch, PaymentDraft
from ledger_kernel.domain.policies import DuplicateCheckPolicy, LedgerPolicies
from ledger_kernel.domain.values import DuplicateReason
from ledger_kernel.exceptions import DuplicateCheckUnavailableError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.payment import Payment
from ledger_kernel.services.base import BaseService

logger = get_logger("services.duplicate_guard")

SIMILARITY_FIELDS = (
    "warehouse_id",
    "amount",
    "payment_mode_id",
    "counterparty_id",
    "direction",
)


class SchemaProbe(Protocol):
    def has_column(self, session: Session, table: str, column: str) -> bool:
        ...


class SqlSchemaProbe:
    """Inspects the live schema once per (table, column) and caches the answer."""

    def __init__(self):
        self._cache: dict[tuple[str, str], bool] = {}

    def has_column(self, session: Session, table: str, column: str) -> bool:
        key = (table, column)
        if key not in self._cache:
            inspector = inspect(session.connection())
            self._cache[key] = any(
                c["name"] == column for c in inspector.get_columns(table)
            )
        return self._cache[key]


class DuplicateGuard(BaseService):
    def __init__(
        self,
        session: Session,
        clock: Clock,
        policies: LedgerPolicies | None = None,
        schema_probe: SchemaProbe | None = None,
    ):
        super().__init__(session)
        self._clock = clock
        self._policies = policies or LedgerPolicies()
        self._schema_probe = schema_probe or SqlSchemaProbe()

    def find_duplicate(
        self,
        draft: PaymentDraft,
        idempotency_key: str | None = None,
    ) -> DuplicateMatch | None:
        """
        Return the already-recorded payment this draft repeats, or None.

        Raises:
            DuplicateCheckUnavailableError: only under a FAIL_CLOSED policy.
        """
        if idempotency_key:
            if self._key_column_available():
                match = self.find_by_key(idempotency_key)
                if match is not None:
                    logger.info(
                        "duplicate_payment_detected",
                        extra={
                            "reason": match.reason.value,
                            "existing_payment_id": str(match.payment_id),
                            "payment_number": match.payment_number,
                        },
                    )
                    return match

        match = self.find_similar(draft)
        if match is not None:
            logger.info(
                "duplicate_payment_detected",
                extra={
                    "reason": match.reason.value,
                    "existing_payment_id": str(match.payment_id),
                    "payment_number": match.payment_number,
                },
            )
        return match

    def _key_column_available(self) -> bool:
        if self._schema_probe.has_column(self.session, Payment.__tablename__, "idempotency_key"):
            return True
        if self._policies.key_column_missing is DuplicateCheckPolicy.FAIL_CLOSED:
            raise DuplicateCheckUnavailableError("payments.idempotency_key column is missing")
        logger.warning(
            "idempotency_column_missing",
            extra={"table": Payment.__tablename__, "policy": "fail_open"},
        )
        return False

    def find_by_key(self, idempotency_key: str) -> DuplicateMatch | None:
        row = self.session.execute(
            select(Payment.id, Payment.payment_number)
            .where(Payment.idempotency_key == idempotency_key)
            .limit(1)
        ).one_or_none()
        if row is None:
            return None
        return DuplicateMatch(
            payment_id=row.id,
            payment_number=row.payment_number,
            reason=DuplicateReason.IDEMPOTENCY_KEY,
        )

    def find_similar(self, draft: PaymentDraft) -> DuplicateMatch | None:
        missing = [name for name in SIMILARITY_FIELDS if getattr(draft, name) is None]
        if missing:
            if self._policies.insufficient_data is DuplicateCheckPolicy.FAIL_CLOSED:
                raise DuplicateCheckUnavailableError(
                    f"similarity check needs {', '.join(missing)}"
                )
            logger.info(
                "similarity_check_skipped",
                extra={"missing_fields": missing, "policy": "fail_open"},
            )
            return None

        window_start = self._clock.now_utc() - timedelta(
            seconds=self._policies.duplicate_window_seconds
        )
        row = self.session.execute(
            select(Payment.id, Payment.payment_number)
            .where(
                Payment.company_id == draft.company_id,
                Payment.warehouse_id == draft.warehouse_id,
                Payment.direction == draft.direction,
                Payment.counterparty_id == draft.counterparty_id,
                Payment.payment_mode_id == draft.payment_mode_id,
                Payment.payment_date == draft.payment_date,
                func.abs(Payment.amount - draft.amount)
                < self._policies.duplicate_amount_tolerance,
                Payment.created_at >= window_start,
            )
            .order_by(Payment.created_at.desc())
            .limit(1)
        ).one_or_none()
        if row is None:
            return None
        return DuplicateMatch(
            payment_id=row.id,
            payment_number=row.payment_number,
            reason=DuplicateReason.SIMILARITY,
        )
