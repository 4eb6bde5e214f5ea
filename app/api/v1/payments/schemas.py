"""Payment ledger schemas: recorded payments, receipts, online payment initiation and verification."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import FeeAccountStatus, GatewayStatus, OnlineGateway, PaymentMethod


class PaymentCreate(BaseModel):
    fee_account_id: UUID
    amount: Decimal = Field(..., gt=0)
    method: PaymentMethod = PaymentMethod.cash
    transaction_id: Optional[str] = Field(None, max_length=100)
    payment_date: Optional[date] = None


class PaymentResponse(BaseModel):
    id: UUID
    fee_account_id: UUID
    amount: Decimal
    method: PaymentMethod
    transaction_id: Optional[str] = None
    payment_date: date
    receipt_no: str
    recorded_by: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PayerInfo(BaseModel):
    name: str
    roll_no: str


class PaymentResult(BaseModel):
    message: str
    payment: PaymentResponse
    receipt_no: str
    student: PayerInfo
    remaining_balance: Decimal
    status: FeeAccountStatus
    voucher_closed: bool


class ReceiptDetail(BaseModel):
    """Receipt data for the document renderer."""

    institution_name: str
    receipt_no: str
    payment: PaymentResponse
    student_name: str
    roll_no: str
    cnic: Optional[str] = None
    department_name: Optional[str] = None
    semester_name: Optional[str] = None
    fee_total: Decimal
    remaining_balance: Decimal
    recorded_by: Optional[UUID] = None


# --- Online ---
class OnlinePaymentRequest(BaseModel):
    fee_account_id: UUID
    amount: Decimal = Field(..., gt=0)
    payment_gateway: OnlineGateway = OnlineGateway.jazzcash
    phone_number: str = Field(..., min_length=1, max_length=20)
    email: Optional[str] = None


class OnlinePaymentInitiated(BaseModel):
    message: str
    status: GatewayStatus
    transaction_id: str
    payment_gateway: OnlineGateway
    fee_account_id: UUID
    amount: Decimal
    redirect_url: str
    note: str


class OnlinePaymentVerification(BaseModel):
    """A success is not yet a payment: post it through /fees/payments to update the balance."""

    status: GatewayStatus
    transaction_id: str
    payment_gateway: OnlineGateway
    fee_account_id: UUID
    amount: Decimal
    verified_at: Optional[datetime] = None
    message: str
