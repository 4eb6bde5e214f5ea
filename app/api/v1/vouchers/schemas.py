from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import EffectiveFeeStatus, VoucherStatus


class VoucherIssueRequest(BaseModel):
    fee_account_id: UUID
    valid_days: Optional[int] = Field(None, ge=1, le=365)
    bank_name: Optional[str] = Field(None, max_length=100)


class VoucherResponse(BaseModel):
    id: UUID
    fee_account_id: UUID
    student_id: UUID
    voucher_no: str
    bank_name: Optional[str] = None
    issue_date: date
    valid_until: date
    status: VoucherStatus
    created_at: datetime

    class Config:
        from_attributes = True


class VoucherStudentInfo(BaseModel):
    name: str
    roll_no: str
    father_name: Optional[str] = None
    cnic: Optional[str] = None
    phone: Optional[str] = None
    department: Optional[str] = None
    semester: Optional[str] = None


class VoucherFeeBreakdown(BaseModel):
    tuition_fee: Decimal = Decimal("0")
    lab_fee: Decimal = Decimal("0")
    library_fee: Decimal = Decimal("0")
    sports_fee: Decimal = Decimal("0")
    exam_fee: Decimal = Decimal("0")
    admission_fee: Decimal = Decimal("0")
    other_fee: Decimal = Decimal("0")
    total: Decimal


class VoucherPaymentInfo(BaseModel):
    total_amount: Decimal
    paid_amount: Decimal
    due_amount: Decimal
    late_fee: Decimal
    total_payable: Decimal
    days_overdue: int
    due_date: date
    status: EffectiveFeeStatus


class BankDetails(BaseModel):
    bank_name: Optional[str] = None
    account_title: str
    account_no: str
    branch_code: str


class VoucherIssueResponse(BaseModel):
    message: str
    voucher: VoucherResponse
    student_info: VoucherStudentInfo
    amount: Decimal
    due_date: date


class VoucherDetail(BaseModel):
    """Everything a renderer needs to print the voucher. qr_payload is the JSON string to encode."""

    voucher: VoucherResponse
    institution_name: str
    student: VoucherStudentInfo
    fee_breakdown: VoucherFeeBreakdown
    payment: VoucherPaymentInfo
    bank_details: BankDetails
    qr_payload: str
