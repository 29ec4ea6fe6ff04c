"""Stock adjustments: create, list, detail, partial update, delete."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ledger_api.dependencies import get_coordinator, get_read_session
from ledger_api.schemas import (
    AdjustmentCreateIn,
    AdjustmentOut,
    AdjustmentPatchIn,
    AdjustmentResultOut,
    PageOut,
)
from ledger_kernel.domain.dtos import UNSET, AdjustmentDraft, AdjustmentPatch
from ledger_kernel.domain.values import AdjustmentDirection, parse_enum
from ledger_kernel.exceptions import AdjustmentNotFoundError, MissingFieldError
from ledger_kernel.selectors.stock_selector import AdjustmentFilter, StockSelector
from ledger_kernel.services.transaction_coordinator import TransactionCoordinator

router = APIRouter(prefix="/stock-adjustments", tags=["Stock adjustments"])


@router.post("", response_model=AdjustmentResultOut, status_code=status.HTTP_201_CREATED)
def create_adjustment(
    body: AdjustmentCreateIn,
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    if body.direction is None:
        raise MissingFieldError("direction", context="stock adjustment")
    draft = AdjustmentDraft(
        company_id=body.company_id,
        warehouse_id=body.warehouse_id,
        product_id=body.product_id,
        direction=parse_enum(AdjustmentDirection, body.direction),
        quantity=body.quantity,
        notes=body.notes,
        created_by=body.created_by,
    )
    return AdjustmentResultOut.model_validate(coordinator.create_adjustment(draft))


@router.get("", response_model=PageOut[AdjustmentOut])
def list_adjustments(
    company_id: UUID | None = None,
    warehouse_id: UUID | None = None,
    product_id: UUID | None = None,
    direction: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=500),
    session: Session = Depends(get_read_session),
):
    criteria = AdjustmentFilter(
        company_id=company_id,
        warehouse_id=warehouse_id,
        product_id=product_id,
        direction=parse_enum(AdjustmentDirection, direction) if direction else None,
        date_from=date_from,
        date_to=date_to,
    )
    result = StockSelector(session).list_adjustments(criteria, page=page, limit=limit)
    return PageOut[AdjustmentOut](
        items=[AdjustmentOut.model_validate(a) for a in result.items],
        page=result.page,
        limit=result.limit,
        total=result.total,
        pages=result.pages,
    )


@router.get("/{adjustment_id}", response_model=AdjustmentOut)
def get_adjustment(adjustment_id: UUID, session: Session = Depends(get_read_session)):
    record = StockSelector(session).get_adjustment(adjustment_id)
    if record is None:
        raise AdjustmentNotFoundError(str(adjustment_id))
    return AdjustmentOut.model_validate(record)


@router.patch("/{adjustment_id}", response_model=AdjustmentResultOut)
def update_adjustment(
    adjustment_id: UUID,
    body: AdjustmentPatchIn,
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    """Only the fields present in the body are changed."""
    sent = body.model_fields_set
    direction = UNSET
    if "direction" in sent:
        direction = (
            parse_enum(AdjustmentDirection, body.direction)
            if body.direction is not None
            else None
        )
    patch = AdjustmentPatch(
        warehouse_id=body.warehouse_id if "warehouse_id" in sent else UNSET,
        product_id=body.product_id if "product_id" in sent else UNSET,
        direction=direction,
        quantity=body.quantity if "quantity" in sent else UNSET,
        notes=body.notes if "notes" in sent else UNSET,
    )
    return AdjustmentResultOut.model_validate(
        coordinator.update_adjustment(adjustment_id, patch)
    )


@router.delete("/{adjustment_id}", response_model=AdjustmentResultOut)
def delete_adjustment(
    adjustment_id: UUID,
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    return AdjustmentResultOut.model_validate(coordinator.delete_adjustment(adjustment_id))
