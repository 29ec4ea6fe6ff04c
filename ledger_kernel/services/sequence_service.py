"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Provides strictly increasing integers per named sequence.  Generated
    document numbers (payment numbers, transfer references) take their
    trailing sequence segment from here.  Uses a dedicated counter table
    with row-level locking (``SELECT ... FOR UPDATE``) so that two
    concurrent requests can never be handed the same value.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by NumberingService.

Invariants enforced:
    - The locked counter row is the sole source of truth for the next
      value.  Reading the latest existing document number is allowed only
      to SEED a counter the first time it is created, so that numbering
      continues from data written before the counter existed.
    - Transactional: an allocation is only visible after the caller's
      transaction commits.  Rollback returns the value.

Failure modes:
    - IntegrityError: concurrent counter creation race (handled via
      savepoint rollback and retry under lock).
"""

from collections.abc import Callable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Guarantees:
        - Concurrency safety: ``SELECT ... FOR UPDATE`` serializes
          concurrent allocations for the same sequence.
        - Values for one name are strictly increasing.

    Non-goals:
        - Does NOT call ``session.commit()``.
        - Does NOT promise gap-free numbering across failed transactions
          of other services (a rolled-back allocation is simply reused).
    """

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(
        self,
        sequence_name: str,
        seed: Callable[[], int] | None = None,
    ) -> int:
        """
        Get the next value for a named sequence.

        Preconditions:
            - ``sequence_name`` is a non-empty string.
            - The caller is within an active database transaction.

        Postconditions:
            - Returns an integer strictly greater than any value previously
              committed for this sequence name.
            - The counter row is locked until the transaction completes.

        Args:
            sequence_name: Name of the sequence.
            seed: Called only when the counter does not exist yet; returns
                the last value already in use (0 if none).

        Returns:
            The next sequence value (always > 0).
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            initial = max(seed(), 0) if seed is not None else 0
            # Another transaction might create the counter simultaneously.
            # The savepoint keeps the caller's earlier work intact.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=initial + 1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={
                        "sequence_name": sequence_name,
                        "value": counter.current_value,
                        "seeded_from": initial,
                    },
                )
                return counter.current_value
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value of a sequence without incrementing, or None."""
        counter = self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()

        return counter.current_value if counter else None
