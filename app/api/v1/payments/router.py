"""Payment ledger router: record payments, receipts, online payment initiation and verification."""

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import check_permission
from app.auth.schemas import CurrentUser
from app.core.events import EventBus, get_event_bus
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .gateway import PaymentGateway, get_payment_gateway
from .schemas import (
    OnlinePaymentInitiated,
    OnlinePaymentRequest,
    OnlinePaymentVerification,
    PaymentCreate,
    PaymentResult,
    ReceiptDetail,
)
from . import service

router = APIRouter(prefix="/api/v1/fees/payments", tags=["fee-payments"])


@router.post(
    "",
    response_model=PaymentResult,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def record_payment(
    payload: PaymentCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
    current_user: CurrentUser = Depends(get_current_user),
) -> PaymentResult:
    try:
        result, event = await service.apply_payment(db, payload, recorded_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    background_tasks.add_task(bus.publish, event)
    return result


@router.get(
    "/{payment_id}/receipt",
    response_model=ReceiptDetail,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def get_receipt(
    payment_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> ReceiptDetail:
    try:
        return await service.get_receipt(db, payment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


# --- Online ---
@router.post(
    "/online",
    response_model=OnlinePaymentInitiated,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def initiate_online_payment(
    payload: OnlinePaymentRequest,
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> OnlinePaymentInitiated:
    try:
        return await service.initiate_online_payment(db, payload, gateway)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.get(
    "/verify/{transaction_id}",
    response_model=OnlinePaymentVerification,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def verify_online_payment(
    transaction_id: str,
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> OnlinePaymentVerification:
    try:
        return await service.verify_online_payment(gateway, transaction_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
