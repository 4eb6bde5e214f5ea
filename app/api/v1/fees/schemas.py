"""Fees schemas: assignment, student fee view, payment history."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from app.core.enums import EffectiveFeeStatus, FeeAccountStatus, PaymentMethod


# --- Assignment ---
class AutoAssignRequest(BaseModel):
    """Cohort assignment. Give exactly one of department_id (all active students) or student_ids."""

    department_id: Optional[UUID] = None
    student_ids: Optional[List[UUID]] = None
    semester_id: UUID
    fee_structure_id: UUID
    due_date: date

    @model_validator(mode="after")
    def validate_cohort(self) -> "AutoAssignRequest":
        has_department = self.department_id is not None
        has_students = bool(self.student_ids)
        if has_department == has_students:
            raise ValueError("Exactly one of department_id or student_ids must be provided")
        return self


class ManualAssignRequest(BaseModel):
    student_id: UUID
    semester_id: UUID
    fee_structure_id: Optional[UUID] = None
    custom_amount: Optional[Decimal] = Field(None, gt=0)
    due_date: date
    remarks: Optional[str] = None

    @model_validator(mode="after")
    def validate_amount_source(self) -> "ManualAssignRequest":
        if self.fee_structure_id is None and self.custom_amount is None:
            raise ValueError("Either fee_structure_id or custom_amount is required")
        return self


class FeeAccountResponse(BaseModel):
    id: UUID
    student_id: UUID
    semester_id: UUID
    fee_structure_id: Optional[UUID] = None
    total_amount: Decimal
    paid_amount: Decimal
    due_amount: Decimal
    due_date: date
    status: FeeAccountStatus
    remarks: Optional[str] = None
    created_at: datetime


class AssignmentFailure(BaseModel):
    student_id: UUID
    error: str


class AutoAssignResponse(BaseModel):
    message: str
    assigned_count: int
    failed_count: int
    assigned: List[FeeAccountResponse]
    failures: List[AssignmentFailure]


# --- Student fee view ---
class SemesterInfo(BaseModel):
    id: UUID
    name: Optional[str] = None
    number: Optional[int] = None


class FeeBreakdown(BaseModel):
    tuition_fee: Decimal = Decimal("0")
    lab_fee: Decimal = Decimal("0")
    library_fee: Decimal = Decimal("0")
    sports_fee: Decimal = Decimal("0")
    exam_fee: Decimal = Decimal("0")
    admission_fee: Decimal = Decimal("0")
    other_fee: Decimal = Decimal("0")


class StudentFeeView(BaseModel):
    """Fee account as seen by a caller: stored amounts plus the late-fee/overdue projection."""

    id: UUID
    semester: SemesterInfo
    session_name: Optional[str] = None
    fee_structure_id: Optional[UUID] = None
    fee_breakdown: FeeBreakdown
    total_amount: Decimal
    paid_amount: Decimal
    due_amount: Decimal
    late_fee: Decimal
    total_payable: Decimal
    days_overdue: int
    due_date: date
    status: EffectiveFeeStatus
    recorded_status: FeeAccountStatus
    remarks: Optional[str] = None
    created_at: datetime


class PaymentHistoryItem(BaseModel):
    id: UUID
    fee_account_id: UUID
    semester_name: Optional[str] = None
    amount: Decimal
    method: PaymentMethod
    transaction_id: Optional[str] = None
    payment_date: date
    receipt_no: str
    recorded_by: Optional[UUID] = None
    created_at: datetime
