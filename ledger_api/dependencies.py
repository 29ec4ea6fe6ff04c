"""Request-scoped dependencies shared by the routers."""

from collections.abc import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from ledger_kernel.services.transaction_coordinator import TransactionCoordinator

IDEMPOTENCY_HEADER = "X-Idempotency-Key"


def get_coordinator(request: Request) -> TransactionCoordinator:
    return request.app.state.coordinator


def get_read_session(request: Request) -> Generator[Session, None, None]:
    """A session for selectors; nothing is committed through it."""
    session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def resolve_idempotency_key(header_value: str | None, body_value: str | None) -> str | None:
    """The header wins over the body; blank values count as absent."""
    for candidate in (header_value, body_value):
        if candidate and candidate.strip():
            return candidate.strip()
    return None
