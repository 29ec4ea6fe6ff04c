"""
Order payment status derivation -- pure function, no I/O.

Responsibility:
    Maps an order's total and the sum of its payment links to
    (paid, due, status, is_deletable).  The projector persists whatever
    this function returns; nothing else decides an order's status.

Invariants enforced:
    - due = total - paid.
    - due <= tolerance  -> PAID (checked first, so an over-paid or
      zero-total order is PAID).
    - paid <= 0         -> UNPAID.
    - otherwise         -> PARTIALLY_PAID.
    - is_deletable iff UNPAID.
"""

from dataclasses import dataclass
from decimal import Decimal

from ledger_kernel.domain.values import PaymentStatus

DEFAULT_STATUS_TOLERANCE = Decimal("0.01")


@dataclass(frozen=True)
class DerivedOrderBalance:
    paid_amount: Decimal
    due_amount: Decimal
    status: PaymentStatus
    is_deletable: bool


def derive_payment_status(
    total: Decimal,
    paid: Decimal,
    tolerance: Decimal = DEFAULT_STATUS_TOLERANCE,
) -> DerivedOrderBalance:
    """
    Derive an order's balance fields from its total and applied payments.

    Args:
        total: Order total.
        paid: Sum of the amounts of every link to the order.
        tolerance: Due amounts at or below this value count as settled.
    """
    due = total - paid
    if due <= tolerance:
        status = PaymentStatus.PAID
    elif paid <= 0:
        status = PaymentStatus.UNPAID
    else:
        status = PaymentStatus.PARTIALLY_PAID
    return DerivedOrderBalance(
        paid_amount=paid,
        due_amount=due,
        status=status,
        is_deletable=status is PaymentStatus.UNPAID,
    )
