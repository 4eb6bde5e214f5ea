"""Fees router: cohort and manual assignment, student fee view, payment history."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import check_permission
from app.auth.schemas import CurrentUser
from app.core.enums import EffectiveFeeStatus
from app.core.events import EventBus, get_event_bus
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    AutoAssignRequest,
    AutoAssignResponse,
    FeeAccountResponse,
    ManualAssignRequest,
    PaymentHistoryItem,
    StudentFeeView,
)
from . import service

router = APIRouter(prefix="/api/v1/fees", tags=["fees"])


# --- Assignment ---
@router.post(
    "/assign/auto",
    response_model=AutoAssignResponse,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def auto_assign_fees(
    payload: AutoAssignRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
    current_user: CurrentUser = Depends(get_current_user),
) -> AutoAssignResponse:
    try:
        result, events = await service.auto_assign_fees(db, payload, assigned_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    for event in events:
        background_tasks.add_task(bus.publish, event)
    return result


@router.post(
    "/assign/manual",
    response_model=FeeAccountResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def manual_assign_fee(
    payload: ManualAssignRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeAccountResponse:
    try:
        result, event = await service.manual_assign_fee(db, payload, assigned_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    background_tasks.add_task(bus.publish, event)
    return result


# --- Student views ---
@router.get(
    "/student/{student_id}",
    response_model=List[StudentFeeView],
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def get_student_fees(
    student_id: UUID,
    fee_status: Optional[EffectiveFeeStatus] = Query(None, alias="status"),
    semester_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[StudentFeeView]:
    try:
        return await service.get_student_fees(
            db,
            student_id,
            status_filter=fee_status,
            semester_id=semester_id,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.get(
    "/student/{student_id}/payments",
    response_model=List[PaymentHistoryItem],
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def get_payment_history(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> List[PaymentHistoryItem]:
    try:
        return await service.get_payment_history(db, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
