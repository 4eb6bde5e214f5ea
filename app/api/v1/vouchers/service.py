"""
Voucher issuer. One issued voucher per fee account at a time; numbers are generated,
inserted, and regenerated on a uniqueness collision up to NUMBER_GENERATION_ATTEMPTS.
"""

import json
from datetime import date, timedelta
from typing import Optional, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.enums import VoucherStatus
from app.core.events import LedgerEvent
from app.core.exceptions import BalanceViolation, ConflictError, NotFoundError, ServiceError, ValidationError
from app.core.fee_status import compute_fee_view, late_fee_rate, to_decimal
from app.core.logging import get_logger
from app.core.models import FEE_COMPONENT_FIELDS, Department, FeeAccount, FeeStructure, FeeVoucher, Semester, Student
from app.core.numbering import generate_voucher_number

from .schemas import (
    BankDetails,
    VoucherDetail,
    VoucherFeeBreakdown,
    VoucherIssueRequest,
    VoucherIssueResponse,
    VoucherPaymentInfo,
    VoucherResponse,
    VoucherStudentInfo,
)

logger = get_logger(__name__)


async def _student_info(db: AsyncSession, student: Student, semester_id: UUID) -> VoucherStudentInfo:
    department = await db.get(Department, student.department_id)
    semester = await db.get(Semester, semester_id)
    return VoucherStudentInfo(
        name=student.name,
        roll_no=student.roll_no,
        father_name=student.father_name,
        cnic=student.cnic,
        phone=student.phone,
        department=department.name if department else None,
        semester=semester.name if semester else None,
    )


async def _issued_voucher_no(db: AsyncSession, fee_account_id: UUID) -> Optional[str]:
    return (
        await db.execute(
            select(FeeVoucher.voucher_no).where(
                FeeVoucher.fee_account_id == fee_account_id,
                FeeVoucher.status == VoucherStatus.issued.value,
            )
        )
    ).scalar_one_or_none()


async def _issue_once(
    db: AsyncSession,
    payload: VoucherIssueRequest,
    today: date,
) -> Tuple[FeeVoucher, FeeAccount, VoucherStudentInfo]:
    acc = (
        await db.execute(
            select(FeeAccount).where(FeeAccount.id == payload.fee_account_id).with_for_update()
        )
    ).scalar_one_or_none()
    if not acc:
        raise NotFoundError("Fee account not found")
    if to_decimal(acc.due_amount) == 0:
        raise ValidationError("Fee already paid")

    expired = await db.execute(
        update(FeeVoucher)
        .where(
            FeeVoucher.fee_account_id == acc.id,
            FeeVoucher.status == VoucherStatus.issued.value,
            FeeVoucher.valid_until < today,
        )
        .values(status=VoucherStatus.expired.value)
        .execution_options(synchronize_session=False)
    )
    if expired.rowcount:
        logger.info("stale_vouchers_expired", fee_account_id=str(acc.id), count=expired.rowcount)

    existing_no = await _issued_voucher_no(db, acc.id)
    if existing_no:
        raise BalanceViolation("Active voucher already exists", {"voucher_no": existing_no})

    student = await db.get(Student, acc.student_id)
    valid_days = payload.valid_days or settings.voucher_valid_days
    voucher = FeeVoucher(
        fee_account_id=acc.id,
        student_id=acc.student_id,
        voucher_no=generate_voucher_number(settings.institution_code, student.roll_no, today),
        bank_name=(payload.bank_name or "").strip() or settings.default_bank_name,
        issue_date=today,
        valid_until=today + timedelta(days=valid_days),
        status=VoucherStatus.issued.value,
    )
    db.add(voucher)
    await db.flush()
    info = await _student_info(db, student, acc.semester_id)
    await db.commit()
    await db.refresh(voucher)
    return voucher, acc, info


async def issue_voucher(
    db: AsyncSession,
    payload: VoucherIssueRequest,
    issued_by: Optional[UUID] = None,
    today: Optional[date] = None,
) -> Tuple[VoucherIssueResponse, LedgerEvent]:
    today = today or date.today()
    for attempt in range(1, settings.number_generation_attempts + 1):
        try:
            voucher, acc, info = await _issue_once(db, payload, today)
        except ServiceError:
            await db.rollback()
            raise
        except IntegrityError as exc:
            await db.rollback()
            if "voucher_no" in str(exc.orig):
                logger.warning("voucher_number_collision", fee_account_id=str(payload.fee_account_id), attempt=attempt)
                continue
            # Lost the race on the one-issued-voucher index
            winner = await _issued_voucher_no(db, payload.fee_account_id)
            if winner:
                raise BalanceViolation("Active voucher already exists", {"voucher_no": winner})
            raise ConflictError("Voucher could not be issued; retry the request")

        logger.info("voucher_issued", voucher_no=voucher.voucher_no, fee_account_id=str(acc.id))
        event = LedgerEvent(
            event_type="voucher.issued",
            reference_table="fee_vouchers",
            reference_id=voucher.id,
            actor_id=issued_by,
            new_value={
                "voucher_no": voucher.voucher_no,
                "fee_account_id": str(acc.id),
                "valid_until": voucher.valid_until.isoformat(),
            },
        )
        response = VoucherIssueResponse(
            message="Voucher generated successfully",
            voucher=VoucherResponse.model_validate(voucher),
            student_info=info,
            amount=to_decimal(acc.due_amount),
            due_date=acc.due_date,
        )
        return response, event

    logger.error("voucher_number_exhausted", fee_account_id=str(payload.fee_account_id))
    raise ServiceError("Could not generate a unique voucher number", status.HTTP_503_SERVICE_UNAVAILABLE)


async def get_voucher(
    db: AsyncSession,
    fee_account_id: UUID,
    today: Optional[date] = None,
) -> VoucherDetail:
    """Most recent voucher of the account with the data needed to render it."""
    voucher = (
        await db.execute(
            select(FeeVoucher)
            .where(FeeVoucher.fee_account_id == fee_account_id)
            .order_by(FeeVoucher.issue_date.desc(), FeeVoucher.created_at.desc())
            .limit(1)
        )
    ).scalar_one_or_none()
    if not voucher:
        raise NotFoundError("Voucher not found")

    acc = await db.get(FeeAccount, voucher.fee_account_id)
    student = await db.get(Student, voucher.student_id)
    fs = await db.get(FeeStructure, acc.fee_structure_id) if acc.fee_structure_id else None
    info = await _student_info(db, student, acc.semester_id)

    components = {f: to_decimal(getattr(fs, f)) for f in FEE_COMPONENT_FIELDS} if fs else {}
    view = compute_fee_view(
        today or date.today(),
        acc.due_date,
        acc.due_amount,
        late_fee_rate(fs.late_fee_per_day if fs else None),
        acc.status,
    )
    qr_payload = json.dumps(
        {
            "voucher_no": voucher.voucher_no,
            "student_name": student.name,
            "roll_no": student.roll_no,
            "amount": str(to_decimal(acc.due_amount)),
            "due_date": acc.due_date.isoformat(),
        }
    )
    return VoucherDetail(
        voucher=VoucherResponse.model_validate(voucher),
        institution_name=settings.institution_name,
        student=info,
        fee_breakdown=VoucherFeeBreakdown(**components, total=to_decimal(acc.total_amount)),
        payment=VoucherPaymentInfo(
            total_amount=to_decimal(acc.total_amount),
            paid_amount=to_decimal(acc.paid_amount),
            due_amount=to_decimal(acc.due_amount),
            late_fee=view.late_fee,
            total_payable=view.total_payable,
            days_overdue=view.days_overdue,
            due_date=acc.due_date,
            status=view.status,
        ),
        bank_details=BankDetails(
            bank_name=voucher.bank_name,
            account_title=settings.bank_account_title,
            account_no=settings.bank_account_no,
            branch_code=settings.bank_branch_code,
        ),
        qr_payload=qr_payload,
    )


async def cancel_voucher(
    db: AsyncSession,
    voucher_id: UUID,
    changed_by: Optional[UUID] = None,
) -> Tuple[VoucherResponse, LedgerEvent]:
    voucher = (
        await db.execute(select(FeeVoucher).where(FeeVoucher.id == voucher_id).with_for_update())
    ).scalar_one_or_none()
    if not voucher:
        raise NotFoundError("Voucher not found")
    if voucher.status != VoucherStatus.issued.value:
        raise ValidationError(f"Only issued vouchers can be cancelled (status: {voucher.status})")

    voucher.status = VoucherStatus.cancelled.value
    await db.commit()
    await db.refresh(voucher)
    logger.info("voucher_cancelled", voucher_no=voucher.voucher_no)
    event = LedgerEvent(
        event_type="voucher.cancelled",
        reference_table="fee_vouchers",
        reference_id=voucher.id,
        actor_id=changed_by,
        old_value={"status": VoucherStatus.issued.value},
        new_value={"status": VoucherStatus.cancelled.value},
    )
    return VoucherResponse.model_validate(voucher), event
