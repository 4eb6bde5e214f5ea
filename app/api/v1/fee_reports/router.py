"""Fee reports router (read-only)."""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import check_permission
from app.core.enums import CollectionGroupBy, PaymentMethod, UnpaidStatusFilter
from app.db.session import get_db

from .schemas import CollectionReport, FeeStatisticsReport, UnpaidFeesReport
from . import service

router = APIRouter(prefix="/api/v1/fees/reports", tags=["fee-reports"])


@router.get(
    "/unpaid",
    response_model=UnpaidFeesReport,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def get_unpaid_fees_report(
    department_id: Optional[UUID] = Query(None),
    semester_id: Optional[UUID] = Query(None),
    fee_status: UnpaidStatusFilter = Query(UnpaidStatusFilter.pending, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> UnpaidFeesReport:
    return await service.get_unpaid_fees_report(
        db,
        department_id=department_id,
        semester_id=semester_id,
        status_filter=fee_status,
        page=page,
        limit=limit,
    )


@router.get(
    "/collection",
    response_model=CollectionReport,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def get_collection_report(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    department_id: Optional[UUID] = Query(None),
    payment_method: Optional[PaymentMethod] = Query(None),
    group_by: CollectionGroupBy = Query(CollectionGroupBy.date),
    db: AsyncSession = Depends(get_db),
) -> CollectionReport:
    if start_date and end_date and start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date must not be after end_date",
        )
    return await service.get_collection_report(
        db,
        start_date=start_date,
        end_date=end_date,
        department_id=department_id,
        payment_method=payment_method,
        group_by=group_by,
    )


@router.get(
    "/statistics",
    response_model=FeeStatisticsReport,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def get_fee_statistics(
    department_id: Optional[UUID] = Query(None),
    session_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> FeeStatisticsReport:
    return await service.get_fee_statistics(db, department_id=department_id, session_id=session_id)
