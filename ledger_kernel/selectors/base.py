"""
Module: ledger_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors, and
    the ``Page`` container for paginated results.  Selectors form the read
    side of the ledger: payment lists and totals, unpaid orders, stock
    history, adjustments, transfers and the invariant audit.
Architecture position: Kernel > Selectors.  May import from db/, models/
    and domain/ value types.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: Selectors accept a Session from the caller but MUST NOT
      call session.add(), session.delete(), session.commit(), or session.flush().
    - DTO return convention: Selectors return frozen dataclasses or computed
      results, NOT raw ORM model instances.
    - Session ownership: Selectors do NOT create or manage their own sessions;
      the caller owns the session and its transaction scope.

Failure modes:
    - Lookups by id return None when the row does not exist; the caller
      decides whether that is an error.
"""

from abc import ABC
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)
T = TypeVar("T")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 500


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of results plus the total count across all pages."""

    items: list[T] = field(default_factory=list)
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    total: int = 0

    @property
    def pages(self) -> int:
        if self.total == 0:
            return 0
        return (self.total + self.limit - 1) // self.limit


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only queries,
        and return DTOs or computed results.  They MUST NOT mutate any data.
    """

    def __init__(self, session: Session):
        """
        Args:
            session: SQLAlchemy session for database operations.
        """
        self.session = session

    def _paginate(self, stmt: Select, page: int, limit: int) -> tuple[list, int, int, int]:
        """
        Run ``stmt`` for one page.

        Returns:
            (rows, page, limit, total) with page and limit clamped to
            1..N and 1..MAX_PAGE_SIZE.
        """
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        total = self.session.execute(
            select(func.count()).select_from(stmt.order_by(None).subquery())
        ).scalar_one()
        rows = self.session.execute(
            stmt.offset((page - 1) * limit).limit(limit)
        ).all()
        return rows, page, limit, total
