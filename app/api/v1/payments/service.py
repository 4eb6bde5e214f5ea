"""
Payment ledger: the only code path that changes fee account balances.

A payment is applied in one transaction: the account row is locked, the balance is moved
by a conditional UPDATE (due_amount >= amount) checked by its affected-row count, the
payment row is inserted with a fresh receipt number, and the account's issued voucher is
closed. A receipt-number collision rolls the whole transaction back and retries it.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.enums import FeeAccountStatus, GatewayStatus, VoucherStatus
from app.core.events import LedgerEvent
from app.core.exceptions import BalanceViolation, NotFoundError, ServiceError, ValidationError
from app.core.fee_status import to_decimal
from app.core.logging import get_logger
from app.core.models import Department, FeeAccount, FeePayment, FeeVoucher, Semester, Student
from app.core.numbering import generate_receipt_number

from .gateway import PaymentGateway
from .schemas import (
    OnlinePaymentInitiated,
    OnlinePaymentRequest,
    OnlinePaymentVerification,
    PayerInfo,
    PaymentCreate,
    PaymentResponse,
    PaymentResult,
    ReceiptDetail,
)

logger = get_logger(__name__)

EXCEEDS_DUE = "Payment amount exceeds due amount"


def _balance_context(acc: FeeAccount) -> dict:
    return {
        "due_amount": float(to_decimal(acc.due_amount)),
        "paid_amount": float(to_decimal(acc.paid_amount)),
        "status": acc.status,
    }


async def _move_balance(db: AsyncSession, fee_account_id: UUID, amount: Decimal) -> int:
    """Conditional balance move; returns the affected-row count (0 when due fell below amount)."""
    moved = await db.execute(
        update(FeeAccount)
        .where(FeeAccount.id == fee_account_id, FeeAccount.due_amount >= amount)
        .values(
            paid_amount=FeeAccount.paid_amount + amount,
            due_amount=FeeAccount.due_amount - amount,
            status=case(
                (FeeAccount.due_amount - amount == 0, FeeAccountStatus.paid.value),
                else_=FeeAccountStatus.partial.value,
            ),
        )
        .execution_options(synchronize_session=False)
    )
    return moved.rowcount


async def _apply_once(
    db: AsyncSession,
    payload: PaymentCreate,
    amount: Decimal,
    recorded_by: Optional[UUID],
) -> Tuple[FeePayment, FeeAccount, bool]:
    acc = (
        await db.execute(
            select(FeeAccount).where(FeeAccount.id == payload.fee_account_id).with_for_update()
        )
    ).scalar_one_or_none()
    if not acc:
        raise NotFoundError("Fee account not found")
    if amount > to_decimal(acc.due_amount):
        raise BalanceViolation(EXCEEDS_DUE, _balance_context(acc))

    if await _move_balance(db, acc.id, amount) != 1:
        # Balance moved under us between the read and the update
        await db.refresh(acc)
        raise BalanceViolation(EXCEEDS_DUE, _balance_context(acc))

    payment = FeePayment(
        fee_account_id=acc.id,
        amount=amount,
        method=payload.method.value,
        transaction_id=payload.transaction_id,
        payment_date=payload.payment_date or date.today(),
        receipt_no=generate_receipt_number(),
        recorded_by=recorded_by,
    )
    db.add(payment)
    await db.flush()

    closed = await db.execute(
        update(FeeVoucher)
        .where(
            FeeVoucher.fee_account_id == acc.id,
            FeeVoucher.status == VoucherStatus.issued.value,
        )
        .values(status=VoucherStatus.paid.value)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(acc)
    await db.refresh(payment)
    return payment, acc, bool(closed.rowcount)


async def apply_payment(
    db: AsyncSession,
    payload: PaymentCreate,
    recorded_by: Optional[UUID] = None,
) -> Tuple[PaymentResult, LedgerEvent]:
    amount = to_decimal(payload.amount)
    if amount <= 0:
        raise ValidationError("Amount must be greater than 0")

    for attempt in range(1, settings.number_generation_attempts + 1):
        try:
            payment, acc, voucher_closed = await _apply_once(db, payload, amount, recorded_by)
        except ServiceError:
            await db.rollback()
            raise
        except IntegrityError as exc:
            await db.rollback()
            if "receipt_no" in str(exc.orig):
                logger.warning("receipt_number_collision", fee_account_id=str(payload.fee_account_id), attempt=attempt)
                continue
            logger.error("payment_integrity_error", fee_account_id=str(payload.fee_account_id), error=str(exc.orig))
            raise ServiceError("Payment could not be recorded", status.HTTP_500_INTERNAL_SERVER_ERROR)

        student = await db.get(Student, acc.student_id)
        logger.info(
            "payment_applied",
            fee_account_id=str(acc.id),
            receipt_no=payment.receipt_no,
            amount=str(amount),
            remaining=str(acc.due_amount),
            status=acc.status,
        )
        event = LedgerEvent(
            event_type="payment.recorded",
            reference_table="fee_payments",
            reference_id=payment.id,
            actor_id=recorded_by,
            new_value={
                "fee_account_id": str(acc.id),
                "amount": str(amount),
                "method": payment.method,
                "receipt_no": payment.receipt_no,
                "remaining_balance": str(acc.due_amount),
                "status": acc.status,
                "voucher_closed": voucher_closed,
            },
        )
        result = PaymentResult(
            message="Payment recorded successfully",
            payment=PaymentResponse.model_validate(payment),
            receipt_no=payment.receipt_no,
            student=PayerInfo(name=student.name, roll_no=student.roll_no),
            remaining_balance=to_decimal(acc.due_amount),
            status=FeeAccountStatus(acc.status),
            voucher_closed=voucher_closed,
        )
        return result, event

    logger.error("receipt_number_exhausted", fee_account_id=str(payload.fee_account_id))
    raise ServiceError("Could not generate a unique receipt number", status.HTTP_503_SERVICE_UNAVAILABLE)


async def get_receipt(db: AsyncSession, payment_id: UUID) -> ReceiptDetail:
    payment = await db.get(FeePayment, payment_id)
    if not payment:
        raise NotFoundError("Receipt not found")
    acc = await db.get(FeeAccount, payment.fee_account_id)
    student = await db.get(Student, acc.student_id)
    department = await db.get(Department, student.department_id)
    semester = await db.get(Semester, acc.semester_id)
    return ReceiptDetail(
        institution_name=settings.institution_name,
        receipt_no=payment.receipt_no,
        payment=PaymentResponse.model_validate(payment),
        student_name=student.name,
        roll_no=student.roll_no,
        cnic=student.cnic,
        department_name=department.name if department else None,
        semester_name=semester.name if semester else None,
        fee_total=to_decimal(acc.total_amount),
        remaining_balance=to_decimal(acc.due_amount),
        recorded_by=payment.recorded_by,
    )


# --- Online ---
async def initiate_online_payment(
    db: AsyncSession,
    payload: OnlinePaymentRequest,
    gateway: PaymentGateway,
) -> OnlinePaymentInitiated:
    acc = await db.get(FeeAccount, payload.fee_account_id)
    if not acc:
        raise NotFoundError("Fee account not found")
    if to_decimal(payload.amount) > to_decimal(acc.due_amount):
        raise BalanceViolation(EXCEEDS_DUE, _balance_context(acc))

    txn = await gateway.initiate(
        gateway=payload.payment_gateway,
        fee_account_id=acc.id,
        amount=to_decimal(payload.amount),
        phone_number=payload.phone_number,
        email=payload.email,
    )
    logger.info(
        "online_payment_initiated",
        transaction_id=txn.transaction_id,
        fee_account_id=str(acc.id),
        gateway=txn.gateway.value,
    )
    return OnlinePaymentInitiated(
        message="Payment initiated",
        status=txn.status,
        transaction_id=txn.transaction_id,
        payment_gateway=txn.gateway,
        fee_account_id=txn.fee_account_id,
        amount=txn.amount,
        redirect_url=txn.redirect_url,
        note="Please complete payment on the payment gateway page",
    )


async def verify_online_payment(gateway: PaymentGateway, transaction_id: str) -> OnlinePaymentVerification:
    txn = await gateway.verify(transaction_id)
    ok = txn.status == GatewayStatus.success
    return OnlinePaymentVerification(
        status=txn.status,
        transaction_id=txn.transaction_id,
        payment_gateway=txn.gateway,
        fee_account_id=txn.fee_account_id,
        amount=txn.amount,
        verified_at=txn.verified_at,
        message="Payment verified successfully" if ok else "Payment verification failed",
    )
