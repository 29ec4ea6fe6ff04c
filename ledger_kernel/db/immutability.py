"""
ORM-Level Write-Once Enforcement for ledger rows.

===============================================================================
WHY THIS EXISTS
===============================================================================

The ledger's derived balances (stock levels, order paid/due/status) are
only trustworthy if the history they are derived from never changes.  A
correction is always a NEW row (an adjustment_reversal movement, a new
payment) so that the trail stays visible.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database.
We register listeners that intercept these events:

    session.flush()
         |
         v
    [before_update event] --> _reject_*_update() --> ImmutabilityViolationError
         |
         v
    [before_delete event] --> _reject_*_delete() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Bulk ``update()``/``delete()`` statements bypass mapper events; the ledger
services never issue them against these tables.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity            | UPDATE    | DELETE
------------------|-----------|-----------------------------------------------
StockMovement     | rejected  | rejected
Payment           | rejected  | allowed (only via delete_payment)
OrderPaymentLink  | rejected  | allowed (only via delete_payment)

===============================================================================
USAGE
===============================================================================

    from ledger_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event

from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _blocked(entity_type: str, target, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _reject_stock_movement_update(mapper, connection, target):
    _blocked(
        "StockMovement",
        target,
        "UPDATE",
        "Stock movements are append-only; record a compensating movement instead",
    )


def _reject_stock_movement_delete(mapper, connection, target):
    _blocked(
        "StockMovement",
        target,
        "DELETE",
        "Stock movements cannot be deleted",
    )


def _reject_payment_update(mapper, connection, target):
    _blocked(
        "Payment",
        target,
        "UPDATE",
        "Payments cannot be modified; delete and re-create instead",
    )


def _reject_order_payment_link_update(mapper, connection, target):
    _blocked(
        "OrderPaymentLink",
        target,
        "UPDATE",
        "Order payment links cannot be modified",
    )


def _listeners():
    from ledger_kernel.models.payment import OrderPaymentLink, Payment
    from ledger_kernel.models.stock import StockMovement

    return (
        (StockMovement, "before_update", _reject_stock_movement_update),
        (StockMovement, "before_delete", _reject_stock_movement_delete),
        (Payment, "before_update", _reject_payment_update),
        (OrderPaymentLink, "before_update", _reject_order_payment_link_update),
    )


def register_immutability_listeners():
    """
    Register all write-once event listeners.

    Idempotent: a listener that is already registered is not added twice.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove write-once event listeners.

    WARNING: Only use this in tests.
    """
    for target, event_name, listener_fn in _listeners():
        _safe_remove_listener(target, event_name, listener_fn)
