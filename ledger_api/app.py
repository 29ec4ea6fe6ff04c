"""
FastAPI application factory for the ledger HTTP boundary.

The boundary is thin: it parses requests into kernel drafts, resolves the
idempotency key, calls TransactionCoordinator, and maps kernel error
categories to HTTP statuses (see ledger_api/errors.py).  No ledger rule
lives here.
"""

from fastapi import FastAPI
from sqlalchemy.orm import Session, sessionmaker

from ledger_api.errors import install_error_handlers
from ledger_api.routers import payments, stock_adjustments, stock_history, stock_transfers
from ledger_config import get_active_config
from ledger_config.bridges import build_ledger_policies, engine_kwargs
from ledger_config.schema import LedgerConfig
from ledger_kernel import __version__
from ledger_kernel.db.engine import get_session_factory, init_engine_from_url
from ledger_kernel.db.immutability import register_immutability_listeners
from ledger_kernel.logging_config import configure_logging, get_logger
from ledger_kernel.services.transaction_coordinator import TransactionCoordinator

logger = get_logger("api.app")


def create_app(
    config: LedgerConfig | None = None,
    coordinator: TransactionCoordinator | None = None,
    session_factory: sessionmaker[Session] | None = None,
) -> FastAPI:
    """
    Build the application.

    With no arguments the active configuration is loaded and the module
    engine initialized from it.  Tests pass a coordinator and the session
    factory it was built on.
    """
    if coordinator is None or session_factory is None:
        config = config or get_active_config()
        configure_logging(level=config.logging.level)
        init_engine_from_url(**engine_kwargs(config))
        session_factory = get_session_factory()
        coordinator = TransactionCoordinator(
            session_factory,
            policies=build_ledger_policies(config),
        )

    register_immutability_listeners()

    app = FastAPI(title="Retail Ledger", version=__version__)
    app.state.coordinator = coordinator
    app.state.session_factory = session_factory

    install_error_handlers(app)
    app.include_router(payments.router)
    app.include_router(stock_adjustments.router)
    app.include_router(stock_transfers.router)
    app.include_router(stock_history.router)

    logger.info("api_app_created", extra={"routes": len(app.routes)})
    return app
