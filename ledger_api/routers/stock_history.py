"""Stock movement history, newest first."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ledger_api.dependencies import get_read_session
from ledger_api.schemas import MovementOut, PageOut
from ledger_kernel.selectors.stock_selector import StockSelector

router = APIRouter(prefix="/stock-history", tags=["Stock history"])


@router.get("", response_model=PageOut[MovementOut])
def stock_history(
    product_id: UUID,
    warehouse_id: UUID | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=500),
    session: Session = Depends(get_read_session),
):
    result = StockSelector(session).stock_history(
        product_id, warehouse_id=warehouse_id, page=page, limit=limit
    )
    return PageOut[MovementOut](
        items=[MovementOut.model_validate(m) for m in result.items],
        page=result.page,
        limit=result.limit,
        total=result.total,
        pages=result.pages,
    )
