"""Payments: create (with order links), list, totals, detail, delete, unpaid orders."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Query, Response, status
from sqlalchemy.orm import Session

from ledger_api.dependencies import (
    IDEMPOTENCY_HEADER,
    get_coordinator,
    get_read_session,
    resolve_idempotency_key,
)
from ledger_api.schemas import (
    OrderPaymentIn,
    PageOut,
    PaymentCreateIn,
    PaymentDeletionOut,
    PaymentDetailOut,
    PaymentFieldsIn,
    PaymentResultOut,
    PaymentSummaryOut,
    PaymentTotalsOut,
    UnpaidOrderOut,
)
from ledger_kernel.domain.dtos import OrderLinkRequest, PaymentDraft, PaymentResult
from ledger_kernel.domain.values import OrderType, PaymentDirection, parse_enum
from ledger_kernel.exceptions import MissingFieldError, PaymentNotFoundError
from ledger_kernel.selectors.order_selector import OrderSelector
from ledger_kernel.selectors.payment_selector import PaymentFilter, PaymentSelector
from ledger_kernel.services.transaction_coordinator import TransactionCoordinator

router = APIRouter(prefix="/payments", tags=["Payments"])


def _draft(body: PaymentFieldsIn) -> PaymentDraft:
    if body.direction is None:
        raise MissingFieldError("direction", context="payment")
    return PaymentDraft(
        company_id=body.company_id,
        warehouse_id=body.warehouse_id,
        direction=parse_enum(PaymentDirection, body.direction),
        payment_date=body.payment_date,
        amount=body.amount,
        payment_mode_id=body.payment_mode_id,
        counterparty_id=body.counterparty_id,
        notes=body.notes,
        staff_user_id=body.staff_user_id,
    )


def _respond(result: PaymentResult, response: Response) -> PaymentResultOut:
    response.status_code = status.HTTP_200_OK if result.is_duplicate else status.HTTP_201_CREATED
    return PaymentResultOut.model_validate(result)


@router.post("", response_model=PaymentResultOut, status_code=status.HTTP_201_CREATED)
def create_payment(
    body: PaymentCreateIn,
    response: Response,
    idempotency_header: str | None = Header(default=None, alias=IDEMPOTENCY_HEADER),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    """201 for a new payment, 200 with the existing payment for a duplicate."""
    links = [
        OrderLinkRequest(order_id=link.order_id, amount=link.amount, remarks=link.remarks)
        for link in body.orders
    ]
    result = coordinator.create_payment(
        _draft(body),
        links,
        idempotency_key=resolve_idempotency_key(idempotency_header, body.idempotency_key),
    )
    return _respond(result, response)


@router.post("/order-payment", response_model=PaymentResultOut, status_code=status.HTTP_201_CREATED)
def create_order_payment(
    body: OrderPaymentIn,
    response: Response,
    idempotency_header: str | None = Header(default=None, alias=IDEMPOTENCY_HEADER),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    result = coordinator.create_order_payment(
        _draft(body),
        body.order_id,
        idempotency_key=resolve_idempotency_key(idempotency_header, body.idempotency_key),
        remarks=body.remarks,
    )
    return _respond(result, response)


def _filter(
    direction: str | None = None,
    company_id: UUID | None = None,
    warehouse_id: UUID | None = None,
    customer_id: UUID | None = None,
    supplier_id: UUID | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    payment_mode_ids: list[UUID] | None = Query(default=None),
    order_id: UUID | None = None,
    search: str | None = None,
) -> PaymentFilter:
    return PaymentFilter(
        company_id=company_id,
        direction=parse_enum(PaymentDirection, direction) if direction else None,
        warehouse_id=warehouse_id,
        customer_id=customer_id,
        supplier_id=supplier_id,
        date_from=date_from,
        date_to=date_to,
        payment_mode_ids=tuple(payment_mode_ids) if payment_mode_ids is not None else None,
        order_id=order_id,
        search=search,
    )


@router.get("", response_model=PageOut[PaymentSummaryOut])
def list_payments(
    criteria: PaymentFilter = Depends(_filter),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=500),
    session: Session = Depends(get_read_session),
):
    result = PaymentSelector(session).list_payments(criteria, page=page, limit=limit)
    return PageOut[PaymentSummaryOut](
        items=[PaymentSummaryOut.model_validate(p) for p in result.items],
        page=result.page,
        limit=result.limit,
        total=result.total,
        pages=result.pages,
    )


@router.get("/totals", response_model=PaymentTotalsOut)
def payment_totals(
    criteria: PaymentFilter = Depends(_filter),
    session: Session = Depends(get_read_session),
):
    return PaymentTotalsOut.model_validate(PaymentSelector(session).totals(criteria))


def _unpaid(
    session: Session,
    counterparty_id: UUID,
    order_type: OrderType,
    warehouse_id: UUID | None,
) -> list[UnpaidOrderOut]:
    orders = OrderSelector(session).list_unpaid_orders(
        counterparty_id, order_type, warehouse_id=warehouse_id
    )
    return [UnpaidOrderOut.model_validate(o) for o in orders]


@router.get("/unpaid-orders/customer/{customer_id}", response_model=list[UnpaidOrderOut])
def unpaid_customer_orders(
    customer_id: UUID,
    warehouse_id: UUID | None = None,
    session: Session = Depends(get_read_session),
):
    return _unpaid(session, customer_id, OrderType.SALES, warehouse_id)


@router.get("/unpaid-orders/supplier/{supplier_id}", response_model=list[UnpaidOrderOut])
def unpaid_supplier_orders(
    supplier_id: UUID,
    warehouse_id: UUID | None = None,
    session: Session = Depends(get_read_session),
):
    return _unpaid(session, supplier_id, OrderType.PURCHASES, warehouse_id)


@router.get("/{payment_id}", response_model=PaymentDetailOut)
def get_payment(payment_id: UUID, session: Session = Depends(get_read_session)):
    detail = PaymentSelector(session).get_payment(payment_id)
    if detail is None:
        raise PaymentNotFoundError(str(payment_id))
    return PaymentDetailOut.model_validate(detail)


@router.delete("/{payment_id}", response_model=PaymentDeletionOut)
def delete_payment(
    payment_id: UUID,
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    return PaymentDeletionOut.model_validate(coordinator.delete_payment(payment_id))
