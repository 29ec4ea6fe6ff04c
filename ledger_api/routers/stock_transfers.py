"""Stock transfers between warehouses."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ledger_api.dependencies import get_coordinator, get_read_session
from ledger_api.schemas import PageOut, TransferCreateIn, TransferOut, TransferResultOut
from ledger_kernel.domain.dtos import TransferDraft, TransferLineRequest
from ledger_kernel.exceptions import TransferNotFoundError
from ledger_kernel.selectors.stock_selector import StockSelector
from ledger_kernel.services.transaction_coordinator import TransactionCoordinator

router = APIRouter(prefix="/stock/transfers", tags=["Stock transfers"])


@router.post("", response_model=TransferResultOut, status_code=status.HTTP_201_CREATED)
def create_transfer(
    body: TransferCreateIn,
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    draft = TransferDraft(
        company_id=body.company_id,
        source_warehouse_id=body.source_warehouse_id,
        destination_warehouse_id=body.destination_warehouse_id,
        transfer_date=body.transfer_date,
        lines=tuple(
            TransferLineRequest(product_id=line.product_id, quantity=line.quantity)
            for line in body.lines
        ),
        notes=body.notes,
        staff_user_id=body.staff_user_id,
    )
    return TransferResultOut.model_validate(coordinator.create_transfer(draft))


@router.get("", response_model=PageOut[TransferOut])
def list_transfers(
    warehouse_id: UUID | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=500),
    session: Session = Depends(get_read_session),
):
    """Transfers sent or received by ``warehouse_id``, tagged with which."""
    result = StockSelector(session).list_transfers(
        warehouse_id=warehouse_id,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    return PageOut[TransferOut](
        items=[TransferOut.model_validate(t) for t in result.items],
        page=result.page,
        limit=result.limit,
        total=result.total,
        pages=result.pages,
    )


@router.get("/{transfer_id}", response_model=TransferOut)
def get_transfer(transfer_id: UUID, session: Session = Depends(get_read_session)):
    record = StockSelector(session).get_transfer(transfer_id)
    if record is None:
        raise TransferNotFoundError(str(transfer_id))
    return TransferOut.model_validate(record)
