"""
Mapping from kernel error categories to HTTP responses.

    LedgerValidationError          -> 400
    LedgerNotFoundError            -> 404
    LedgerConflictError            -> 403
    DuplicateCheckUnavailableError -> 503
    any other LedgerError          -> 500

Bodies are ``{"error": {"code": ..., "message": ...}}``.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ledger_kernel.exceptions import (
    DuplicateCheckUnavailableError,
    LedgerConflictError,
    LedgerError,
    LedgerNotFoundError,
    LedgerValidationError,
)
from ledger_kernel.logging_config import get_logger

logger = get_logger("api.errors")

_STATUS_BY_CATEGORY: tuple[tuple[type[LedgerError], int], ...] = (
    (LedgerValidationError, 400),
    (LedgerNotFoundError, 404),
    (LedgerConflictError, 403),
    (DuplicateCheckUnavailableError, 503),
)


def status_for(exc: LedgerError) -> int:
    for category, status in _STATUS_BY_CATEGORY:
        if isinstance(exc, category):
            return status
    return 500


def error_body(code: str, message: str) -> dict:
    return {"error": {"code": code, "message": message}}


async def _ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error(
            "request_failed",
            extra={"path": request.url.path, "error_code": exc.code},
            exc_info=exc,
        )
    else:
        logger.info(
            "request_rejected",
            extra={"path": request.url.path, "error_code": exc.code, "status": status},
        )
    return JSONResponse(status_code=status, content=error_body(exc.code, str(exc)))


async def _request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "code": "REQUEST_VALIDATION_ERROR",
                "message": "Malformed request",
                "details": [
                    {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
                    for err in exc.errors()
                ],
            }
        },
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LedgerError, _ledger_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
