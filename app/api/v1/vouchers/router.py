"""Fee voucher router."""

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import check_permission
from app.auth.schemas import CurrentUser
from app.core.events import EventBus, get_event_bus
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import VoucherDetail, VoucherIssueRequest, VoucherIssueResponse, VoucherResponse
from . import service

router = APIRouter(prefix="/api/v1/fees/vouchers", tags=["fee-vouchers"])


@router.post(
    "",
    response_model=VoucherIssueResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def issue_voucher(
    payload: VoucherIssueRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
    current_user: CurrentUser = Depends(get_current_user),
) -> VoucherIssueResponse:
    try:
        result, event = await service.issue_voucher(db, payload, issued_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    background_tasks.add_task(bus.publish, event)
    return result


@router.get(
    "/{fee_account_id}",
    response_model=VoucherDetail,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def get_voucher(
    fee_account_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> VoucherDetail:
    try:
        return await service.get_voucher(db, fee_account_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.patch(
    "/{voucher_id}/cancel",
    response_model=VoucherResponse,
    dependencies=[Depends(check_permission("fees", "update"))],
)
async def cancel_voucher(
    voucher_id: UUID,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
    current_user: CurrentUser = Depends(get_current_user),
) -> VoucherResponse:
    try:
        result, event = await service.cancel_voucher(db, voucher_id, changed_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    background_tasks.add_task(bus.publish, event)
    return result
