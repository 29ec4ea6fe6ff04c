"""
NumberingService -- human-readable document numbers.

Responsibility:
    Generates payment numbers and stock transfer references:

        PAY-{IN|OUT}-{WH}-{seq}      e.g. PAY-IN-MAI-0007
        TR-{WH}{MM}{YYYY}-{seq}      e.g. TR-MAI032024-0012

    where WH is the warehouse code (leading letters of its name, "DEF" when
    the warehouse cannot be found) and seq is zero-padded.  Payment numbers
    count per (direction, warehouse code); transfer references count per
    (source warehouse code, month, year).

Architecture position:
    Kernel > Services.  Called by PaymentReconciliationService and
    StockTransferWorkflow.  Delegates the counter to SequenceService.

Invariants enforced:
    - Two concurrent allocations for the same scope never receive the same
      sequence value (locked counter row).
    - A counter created for a scope that already has numbers continues
      after the latest existing one (seeded from its trailing segment).
    - The unique constraints on payments.payment_number and
      stock_transfers.reference_number back this up at the database.

Failure modes:
    - Under NumberingFailurePolicy.FAIL_SOFT (default) any error while
      generating a number is logged and a synthetic
      ``{PREFIX}-ERR-{epoch millis}-{random hex}`` label is returned; the
      surrounding operation continues.  The failed attempt is confined to a savepoint.
    - Under FAIL_HARD the error is raised as NumberingError.
"""

from collections.abc import Callable
from datetime import date
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.policies import LedgerPolicies, NumberingFailurePolicy
from ledger_kernel.domain.values import PaymentDirection
from ledger_kernel.exceptions import LedgerError, NumberingError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.payment import Payment
from ledger_kernel.models.stock import StockTransfer
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.directory import WarehouseDirectory, warehouse_code
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.numbering")


def _stem_pattern(number_stem: str) -> str:
    """LIKE pattern for numbers in one series; wildcards in the stem match literally."""
    escaped = number_stem.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{escaped}-%"


def parse_trailing_sequence(number: str | None) -> int:
    """
    Sequence value encoded in the segment after the last ``-``.

    Returns 0 when there is no number or the segment is not numeric.
    """
    if not number:
        return 0
    tail = number.rsplit("-", 1)[-1]
    return int(tail) if tail.isdigit() else 0


class NumberingService(BaseService):
    def __init__(
        self,
        session: Session,
        clock: Clock,
        warehouses: WarehouseDirectory,
        policies: LedgerPolicies | None = None,
        sequences: SequenceService | None = None,
    ):
        super().__init__(session)
        self._clock = clock
        self._warehouses = warehouses
        self._policies = policies or LedgerPolicies()
        self._sequences = sequences or SequenceService(session)

    def _warehouse_code(self, warehouse_id: UUID | None) -> str:
        info = self._warehouses.find_warehouse(warehouse_id) if warehouse_id else None
        return warehouse_code(
            info,
            length=self._policies.warehouse_code_length,
            unknown=self._policies.unknown_warehouse_code,
        )

    def _format(self, stem: str, value: int) -> str:
        return f"{stem}-{value:0{self._policies.sequence_width}d}"

    def next_payment_number(
        self,
        warehouse_id: UUID | None,
        direction: PaymentDirection,
    ) -> str:
        prefix = self._policies.payment_prefix

        def stem() -> str:
            code = self._warehouse_code(warehouse_id)
            return f"{prefix}-{direction.number_code}-{code}"

        def latest(number_stem: str) -> str | None:
            return self.session.execute(
                select(Payment.payment_number)
                .where(Payment.payment_number.like(_stem_pattern(number_stem), escape="\\"))
                .order_by(Payment.created_at.desc(), Payment.payment_number.desc())
                .limit(1)
            ).scalar_one_or_none()

        return self._allocate("payment_number", prefix, stem, latest)

    def next_transfer_reference(
        self,
        source_warehouse_id: UUID,
        transfer_date: date,
    ) -> str:
        prefix = self._policies.transfer_prefix

        def stem() -> str:
            code = self._warehouse_code(source_warehouse_id)
            return f"{prefix}-{code}{transfer_date.month:02d}{transfer_date.year:04d}"

        def latest(number_stem: str) -> str | None:
            return self.session.execute(
                select(StockTransfer.reference_number)
                .where(StockTransfer.reference_number.like(_stem_pattern(number_stem), escape="\\"))
                .order_by(StockTransfer.created_at.desc(), StockTransfer.reference_number.desc())
                .limit(1)
            ).scalar_one_or_none()

        return self._allocate("transfer_reference", prefix, stem, latest)

    def _allocate(
        self,
        kind: str,
        prefix: str,
        stem: Callable[[], str],
        latest: Callable[[str], str | None],
    ) -> str:
        sequence_name = kind
        try:
            with self.session.begin_nested():
                number_stem = stem()
                sequence_name = f"{kind}:{number_stem}"
                value = self._sequences.next_value(
                    sequence_name,
                    seed=lambda: parse_trailing_sequence(latest(number_stem)),
                )
        except (SQLAlchemyError, LedgerError, ValueError) as exc:
            if self._policies.numbering_failure is NumberingFailurePolicy.FAIL_HARD:
                logger.error(
                    "numbering_failed",
                    extra={"sequence_name": sequence_name},
                    exc_info=True,
                )
                raise NumberingError(sequence_name, str(exc)) from exc
            fallback = f"{prefix}-ERR-{self._clock.epoch_millis()}-{uuid4().hex[:8]}"
            logger.warning(
                "numbering_fallback_used",
                extra={"sequence_name": sequence_name, "fallback_number": fallback},
                exc_info=True,
            )
            return fallback

        number = self._format(number_stem, value)
        logger.info(
            "document_number_allocated",
            extra={"sequence_name": sequence_name, "number": number},
        )
        return number
