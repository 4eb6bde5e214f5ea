"""Fees service: per-student fee assignment (cohort and manual), student fee view, payment history."""

from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.enums import EffectiveFeeStatus, FeeAccountStatus, PaymentMethod, StudentStatus
from app.core.events import LedgerEvent
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.fee_status import compute_fee_view, derive_status, late_fee_rate, to_decimal
from app.core.logging import get_logger
from app.core.models import (
    FEE_COMPONENT_FIELDS,
    AcademicSession,
    FeeAccount,
    FeePayment,
    FeeStructure,
    Semester,
    Student,
)

from .schemas import (
    AssignmentFailure,
    AutoAssignRequest,
    AutoAssignResponse,
    FeeAccountResponse,
    FeeBreakdown,
    ManualAssignRequest,
    PaymentHistoryItem,
    SemesterInfo,
    StudentFeeView,
)

logger = get_logger(__name__)

ALREADY_ASSIGNED = "Fee already assigned"


def _account_to_response(acc: FeeAccount) -> FeeAccountResponse:
    return FeeAccountResponse(
        id=acc.id,
        student_id=acc.student_id,
        semester_id=acc.semester_id,
        fee_structure_id=acc.fee_structure_id,
        total_amount=to_decimal(acc.total_amount),
        paid_amount=to_decimal(acc.paid_amount),
        due_amount=to_decimal(acc.due_amount),
        due_date=acc.due_date,
        status=FeeAccountStatus(acc.status),
        remarks=acc.remarks,
        created_at=acc.created_at,
    )


def _assigned_event(acc: FeeAccount, assigned_by: Optional[UUID]) -> LedgerEvent:
    return LedgerEvent(
        event_type="fee_account.assigned",
        reference_table="fee_accounts",
        reference_id=acc.id,
        actor_id=assigned_by,
        new_value={
            "student_id": str(acc.student_id),
            "semester_id": str(acc.semester_id),
            "fee_structure_id": str(acc.fee_structure_id) if acc.fee_structure_id else None,
            "total_amount": str(acc.total_amount),
            "due_date": acc.due_date.isoformat(),
        },
    )


def _new_account(
    student_id: UUID,
    semester_id: UUID,
    fee_structure_id: Optional[UUID],
    total: Decimal,
    due_date: date,
    remarks: Optional[str],
    assigned_by: Optional[UUID],
) -> FeeAccount:
    return FeeAccount(
        student_id=student_id,
        semester_id=semester_id,
        fee_structure_id=fee_structure_id,
        total_amount=total,
        paid_amount=Decimal("0"),
        due_amount=total,
        due_date=due_date,
        status=derive_status(Decimal("0"), total).value,
        remarks=remarks,
        assigned_by=assigned_by,
    )


async def _existing_account_id(db: AsyncSession, student_id: UUID, semester_id: UUID) -> Optional[UUID]:
    return (
        await db.execute(
            select(FeeAccount.id).where(
                FeeAccount.student_id == student_id,
                FeeAccount.semester_id == semester_id,
            )
        )
    ).scalar_one_or_none()


# --- Assignment ---
async def auto_assign_fees(
    db: AsyncSession,
    payload: AutoAssignRequest,
    assigned_by: Optional[UUID] = None,
) -> Tuple[AutoAssignResponse, List[LedgerEvent]]:
    """
    Assign a fee structure to a cohort. Best effort per student: a student who already has a
    fee account for the semester is reported in failures and the rest of the cohort continues.
    Students are processed in order inside one transaction.
    """
    if (payload.department_id is None) == (not payload.student_ids):
        raise ValidationError("Exactly one of department_id or student_ids must be provided")
    semester = await db.get(Semester, payload.semester_id)
    if not semester:
        raise NotFoundError("Semester not found")
    fs = await db.get(FeeStructure, payload.fee_structure_id)
    if not fs:
        raise NotFoundError("Fee structure not found")

    failures: List[AssignmentFailure] = []
    active = Student.status == StudentStatus.active.value
    if payload.department_id is not None:
        students = (
            await db.execute(
                select(Student)
                .where(Student.department_id == payload.department_id, active)
                .order_by(Student.roll_no)
            )
        ).scalars().all()
    else:
        found = {
            s.id: s
            for s in (
                await db.execute(select(Student).where(Student.id.in_(payload.student_ids), active))
            ).scalars().all()
        }
        students = [found[sid] for sid in payload.student_ids if sid in found]
        failures.extend(
            AssignmentFailure(student_id=sid, error="Student not found or inactive")
            for sid in payload.student_ids
            if sid not in found
        )
    if not students:
        raise NotFoundError("No eligible students found")

    total = to_decimal(fs.total_fee)
    fs_id = fs.id
    student_ids = [s.id for s in students]
    created: List[FeeAccount] = []
    for attempt in range(1, settings.number_generation_attempts + 1):
        skipped: List[AssignmentFailure] = []
        created = []
        try:
            for student_id in student_ids:
                if await _existing_account_id(db, student_id, payload.semester_id):
                    skipped.append(AssignmentFailure(student_id=student_id, error=ALREADY_ASSIGNED))
                    continue
                acc = _new_account(student_id, payload.semester_id, fs_id, total, payload.due_date, None, assigned_by)
                db.add(acc)
                await db.flush()
                created.append(acc)
            await db.commit()
        except IntegrityError:
            # A concurrent writer billed one of these students; rerun so it shows up as a failure
            await db.rollback()
            logger.warning("fees_auto_assign_conflict", semester_id=str(payload.semester_id), attempt=attempt)
            continue
        failures.extend(skipped)
        break
    else:
        raise ConflictError("Fee assignment conflicted with a concurrent assignment; retry the request")

    logger.info(
        "fees_auto_assigned",
        fee_structure_id=str(fs_id),
        semester_id=str(payload.semester_id),
        assigned=len(created),
        failed=len(failures),
    )
    response = AutoAssignResponse(
        message=f"Fees assigned successfully to {len(created)} students",
        assigned_count=len(created),
        failed_count=len(failures),
        assigned=[_account_to_response(a) for a in created],
        failures=failures,
    )
    return response, [_assigned_event(a, assigned_by) for a in created]


async def manual_assign_fee(
    db: AsyncSession,
    payload: ManualAssignRequest,
    assigned_by: Optional[UUID] = None,
) -> Tuple[FeeAccountResponse, LedgerEvent]:
    """Assign one fee account. A custom amount takes precedence over the structure total."""
    student = await db.get(Student, payload.student_id)
    if not student:
        raise NotFoundError("Student not found")
    semester = await db.get(Semester, payload.semester_id)
    if not semester:
        raise NotFoundError("Semester not found")

    fs: Optional[FeeStructure] = None
    if payload.fee_structure_id is not None:
        fs = await db.get(FeeStructure, payload.fee_structure_id)
        if not fs:
            raise NotFoundError("Fee structure not found")

    if payload.custom_amount is not None:
        total = to_decimal(payload.custom_amount)
        if total <= 0:
            raise ValidationError("custom_amount must be greater than 0")
    elif fs is not None:
        total = to_decimal(fs.total_fee)
    else:
        raise ValidationError("Either fee_structure_id or custom_amount is required")

    existing = await _existing_account_id(db, payload.student_id, payload.semester_id)
    if existing:
        raise ValidationError("Fee already assigned for this semester", {"fee_account_id": str(existing)})

    acc = _new_account(
        payload.student_id,
        payload.semester_id,
        fs.id if fs else None,
        total,
        payload.due_date,
        (payload.remarks or "").strip() or None,
        assigned_by,
    )
    try:
        db.add(acc)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ValidationError("Fee already assigned for this semester")
    await db.refresh(acc)
    return _account_to_response(acc), _assigned_event(acc, assigned_by)


# --- Student fee view ---
async def get_student_fees(
    db: AsyncSession,
    student_id: UUID,
    status_filter: Optional[EffectiveFeeStatus] = None,
    semester_id: Optional[UUID] = None,
    today: Optional[date] = None,
) -> List[StudentFeeView]:
    student = await db.get(Student, student_id)
    if not student:
        raise NotFoundError("Student not found")
    today = today or date.today()

    stmt = (
        select(FeeAccount, Semester, AcademicSession, FeeStructure)
        .join(Semester, FeeAccount.semester_id == Semester.id)
        .outerjoin(AcademicSession, Semester.session_id == AcademicSession.id)
        .outerjoin(FeeStructure, FeeAccount.fee_structure_id == FeeStructure.id)
        .where(FeeAccount.student_id == student_id)
    )
    if semester_id is not None:
        stmt = stmt.where(FeeAccount.semester_id == semester_id)
    stmt = stmt.order_by(FeeAccount.created_at.desc())
    result = await db.execute(stmt)

    out: List[StudentFeeView] = []
    for acc, sem, sess, fs in result.all():
        view = compute_fee_view(
            today,
            acc.due_date,
            acc.due_amount,
            late_fee_rate(fs.late_fee_per_day if fs else None),
            acc.status,
        )
        if status_filter is not None and view.status != status_filter:
            continue
        breakdown = FeeBreakdown(**{f: to_decimal(getattr(fs, f)) for f in FEE_COMPONENT_FIELDS}) if fs else FeeBreakdown()
        out.append(
            StudentFeeView(
                id=acc.id,
                semester=SemesterInfo(id=sem.id, name=sem.name, number=sem.number),
                session_name=sess.name if sess else None,
                fee_structure_id=acc.fee_structure_id,
                fee_breakdown=breakdown,
                total_amount=to_decimal(acc.total_amount),
                paid_amount=to_decimal(acc.paid_amount),
                due_amount=to_decimal(acc.due_amount),
                late_fee=view.late_fee,
                total_payable=view.total_payable,
                days_overdue=view.days_overdue,
                due_date=acc.due_date,
                status=view.status,
                recorded_status=FeeAccountStatus(acc.status),
                remarks=acc.remarks,
                created_at=acc.created_at,
            )
        )
    return out


async def get_payment_history(db: AsyncSession, student_id: UUID) -> List[PaymentHistoryItem]:
    student = await db.get(Student, student_id)
    if not student:
        raise NotFoundError("Student not found")
    stmt = (
        select(FeePayment, Semester.name)
        .join(FeeAccount, FeePayment.fee_account_id == FeeAccount.id)
        .outerjoin(Semester, FeeAccount.semester_id == Semester.id)
        .where(FeeAccount.student_id == student_id)
        .order_by(FeePayment.payment_date.desc(), FeePayment.created_at.desc())
    )
    result = await db.execute(stmt)
    return [
        PaymentHistoryItem(
            id=p.id,
            fee_account_id=p.fee_account_id,
            semester_name=sem_name,
            amount=to_decimal(p.amount),
            method=PaymentMethod(p.method),
            transaction_id=p.transaction_id,
            payment_date=p.payment_date,
            receipt_no=p.receipt_no,
            recorded_by=p.recorded_by,
            created_at=p.created_at,
        )
        for p, sem_name in result.all()
    ]
