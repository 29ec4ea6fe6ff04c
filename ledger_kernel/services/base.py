"""
BaseService -- abstract base for all ledger services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write-side service.  All concrete services receive a SQLAlchemy
    ``Session`` and use ``session.flush()`` -- never ``session.commit()``.

Invariants enforced:
    Services flush within the caller's transaction and never commit or
    roll back the outer transaction themselves.  TransactionCoordinator
    (or a test) owns commit/rollback, which is what makes a payment with
    its links and order projections, or a transfer with all of its
    movements, all-or-nothing.  Savepoints (``begin_nested``) are allowed
    for local recovery.

Failure modes:
    - If a subclass calls ``session.commit()``, a later failure in the same
      operation can no longer undo the earlier writes.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for all ledger services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read models; those belong in
          ``ledger_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        """
        Args:
            session: SQLAlchemy session for database operations.
        """
        self.session = session
