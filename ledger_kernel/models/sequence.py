"""
Module: ledger_kernel.models.sequence
Responsibility: Named counter rows behind generated document numbers.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One row per sequence name (UNIQUE).
    - current_value only ever increases, under a row lock held by
      SequenceService until the caller's transaction ends.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row represents a named sequence with its current value, for
    example ``payment_number:PAY-IN-MAI`` or ``transfer_reference:TR-MAI012024``.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )
