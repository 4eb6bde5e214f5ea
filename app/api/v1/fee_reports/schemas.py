from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel

from app.core.enums import CollectionGroupBy, EffectiveFeeStatus


# --- Unpaid ---
class UnpaidFeeRow(BaseModel):
    fee_account_id: UUID
    student_id: UUID
    student_name: str
    roll_no: str
    phone: Optional[str] = None
    department_name: Optional[str] = None
    semester_name: Optional[str] = None
    session_name: Optional[str] = None
    total_amount: Decimal
    paid_amount: Decimal
    due_amount: Decimal
    late_fee: Decimal
    total_payable: Decimal
    days_overdue: int
    due_date: date
    status: EffectiveFeeStatus


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class UnpaidSummary(BaseModel):
    total_unpaid: Decimal


class UnpaidFeesReport(BaseModel):
    unpaid_fees: List[UnpaidFeeRow]
    pagination: Pagination
    summary: UnpaidSummary


# --- Collection ---
class CollectionRow(BaseModel):
    """Only the field matching group_by is set."""

    payment_date: Optional[date] = None
    department_name: Optional[str] = None
    method: Optional[str] = None
    transaction_count: int
    total_collected: Decimal


class CollectionSummary(BaseModel):
    total_collected: Decimal
    total_transactions: int
    by_method: Dict[str, Decimal]


class CollectionReport(BaseModel):
    group_by: CollectionGroupBy
    collections: List[CollectionRow]
    summary: CollectionSummary


# --- Statistics ---
class FeeStatistics(BaseModel):
    total_fees_assigned: int
    total_paid: int
    total_pending: int
    total_partial: int
    total_overdue: int
    total_amount_assigned: Decimal
    total_amount_collected: Decimal
    total_amount_due: Decimal
    collection_percentage: Decimal


class AgingBucket(BaseModel):
    bucket: str
    accounts: int
    amount: Decimal


class DepartmentTotals(BaseModel):
    department_id: UUID
    department_name: str
    accounts: int
    amount_assigned: Decimal
    amount_collected: Decimal
    amount_due: Decimal


class FeeStatisticsReport(BaseModel):
    statistics: FeeStatistics
    aging: List[AgingBucket]
    by_department: List[DepartmentTotals]
