"""Fee reports. Read-only: nothing here writes to the ledger."""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, func, not_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import CollectionGroupBy, EffectiveFeeStatus, PaymentMethod, UnpaidStatusFilter
from app.core.fee_status import compute_fee_view, late_fee_rate, overdue_clause, to_decimal
from app.core.models import AcademicSession, Department, FeeAccount, FeePayment, FeeStructure, Semester, Student

from .schemas import (
    AgingBucket,
    CollectionReport,
    CollectionRow,
    CollectionSummary,
    DepartmentTotals,
    FeeStatistics,
    FeeStatisticsReport,
    Pagination,
    UnpaidFeeRow,
    UnpaidFeesReport,
    UnpaidSummary,
)

AGING_BUCKETS: Tuple[Tuple[str, int, Optional[int]], ...] = (
    ("not_yet_due", 0, 0),
    ("1-30", 1, 30),
    ("31-60", 31, 60),
    ("61-90", 61, 90),
    ("90+", 91, None),
)


def _unpaid_status_clause(status_filter: UnpaidStatusFilter, today: date):
    overdue = overdue_clause(FeeAccount, today)
    if status_filter == UnpaidStatusFilter.overdue:
        return overdue
    if status_filter == UnpaidStatusFilter.all:
        return None
    return and_(FeeAccount.status == status_filter.value, not_(overdue))


async def get_unpaid_fees_report(
    db: AsyncSession,
    department_id: Optional[UUID] = None,
    semester_id: Optional[UUID] = None,
    status_filter: UnpaidStatusFilter = UnpaidStatusFilter.pending,
    page: int = 1,
    limit: int = 50,
    today: Optional[date] = None,
) -> UnpaidFeesReport:
    today = today or date.today()
    conditions = [FeeAccount.due_amount > 0]
    if department_id is not None:
        conditions.append(Student.department_id == department_id)
    if semester_id is not None:
        conditions.append(FeeAccount.semester_id == semester_id)
    status_clause = _unpaid_status_clause(status_filter, today)
    if status_clause is not None:
        conditions.append(status_clause)

    total, total_unpaid = (
        await db.execute(
            select(func.count(FeeAccount.id), func.coalesce(func.sum(FeeAccount.due_amount), 0))
            .join(Student, FeeAccount.student_id == Student.id)
            .where(*conditions)
        )
    ).one()

    stmt = (
        select(
            FeeAccount,
            Student,
            Department.name,
            Semester.name,
            AcademicSession.name,
            FeeStructure.late_fee_per_day,
        )
        .join(Student, FeeAccount.student_id == Student.id)
        .outerjoin(Department, Student.department_id == Department.id)
        .outerjoin(Semester, FeeAccount.semester_id == Semester.id)
        .outerjoin(AcademicSession, Semester.session_id == AcademicSession.id)
        .outerjoin(FeeStructure, FeeAccount.fee_structure_id == FeeStructure.id)
        .where(*conditions)
        .order_by(FeeAccount.due_date.asc(), Student.roll_no.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    rows: List[UnpaidFeeRow] = []
    for acc, student, dept_name, sem_name, sess_name, late_fee_per_day in (await db.execute(stmt)).all():
        view = compute_fee_view(today, acc.due_date, acc.due_amount, late_fee_rate(late_fee_per_day), acc.status)
        rows.append(
            UnpaidFeeRow(
                fee_account_id=acc.id,
                student_id=student.id,
                student_name=student.name,
                roll_no=student.roll_no,
                phone=student.phone,
                department_name=dept_name,
                semester_name=sem_name,
                session_name=sess_name,
                total_amount=to_decimal(acc.total_amount),
                paid_amount=to_decimal(acc.paid_amount),
                due_amount=to_decimal(acc.due_amount),
                late_fee=view.late_fee,
                total_payable=view.total_payable,
                days_overdue=view.days_overdue,
                due_date=acc.due_date,
                status=view.status,
            )
        )

    return UnpaidFeesReport(
        unpaid_fees=rows,
        pagination=Pagination(page=page, limit=limit, total=total, pages=(total + limit - 1) // limit),
        summary=UnpaidSummary(total_unpaid=to_decimal(total_unpaid)),
    )


async def get_collection_report(
    db: AsyncSession,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    department_id: Optional[UUID] = None,
    payment_method: Optional[PaymentMethod] = None,
    group_by: CollectionGroupBy = CollectionGroupBy.date,
) -> CollectionReport:
    conditions = []
    if start_date is not None:
        conditions.append(FeePayment.payment_date >= start_date)
    if end_date is not None:
        conditions.append(FeePayment.payment_date <= end_date)
    if department_id is not None:
        conditions.append(Student.department_id == department_id)
    if payment_method is not None:
        conditions.append(FeePayment.method == payment_method.value)

    def _base(*columns):
        return (
            select(*columns)
            .select_from(FeePayment)
            .join(FeeAccount, FeePayment.fee_account_id == FeeAccount.id)
            .join(Student, FeeAccount.student_id == Student.id)
            .join(Department, Student.department_id == Department.id)
            .where(*conditions)
        )

    key = {
        CollectionGroupBy.date: FeePayment.payment_date,
        CollectionGroupBy.department: Department.name,
        CollectionGroupBy.method: FeePayment.method,
    }[group_by]
    order = key.desc() if group_by == CollectionGroupBy.date else key.asc()
    grouped = await db.execute(
        _base(key, func.count(FeePayment.id), func.sum(FeePayment.amount)).group_by(key).order_by(order)
    )
    field = {
        CollectionGroupBy.date: "payment_date",
        CollectionGroupBy.department: "department_name",
        CollectionGroupBy.method: "method",
    }[group_by]
    collections = [
        CollectionRow(**{field: value}, transaction_count=count, total_collected=to_decimal(total))
        for value, count, total in grouped.all()
    ]

    by_method: Dict[str, Decimal] = {
        method: to_decimal(total)
        for method, total in (
            await db.execute(
                _base(FeePayment.method, func.sum(FeePayment.amount)).group_by(FeePayment.method)
            )
        ).all()
    }
    return CollectionReport(
        group_by=group_by,
        collections=collections,
        summary=CollectionSummary(
            total_collected=sum((r.total_collected for r in collections), Decimal("0")),
            total_transactions=sum(r.transaction_count for r in collections),
            by_method=by_method,
        ),
    )


def _aging_bucket(days_overdue: int) -> str:
    for label, low, high in AGING_BUCKETS:
        if days_overdue >= low and (high is None or days_overdue <= high):
            return label
    return AGING_BUCKETS[-1][0]


async def get_fee_statistics(
    db: AsyncSession,
    department_id: Optional[UUID] = None,
    session_id: Optional[UUID] = None,
    today: Optional[date] = None,
) -> FeeStatisticsReport:
    """Status counts use the effective status, so overdue accounts are counted as overdue only."""
    today = today or date.today()
    conditions = []
    if department_id is not None:
        conditions.append(Student.department_id == department_id)
    if session_id is not None:
        conditions.append(Semester.session_id == session_id)

    scan = await db.execute(
        select(
            FeeAccount.total_amount,
            FeeAccount.paid_amount,
            FeeAccount.due_amount,
            FeeAccount.due_date,
            FeeAccount.status,
        )
        .join(Student, FeeAccount.student_id == Student.id)
        .join(Semester, FeeAccount.semester_id == Semester.id)
        .where(*conditions)
    )

    counts = {s: 0 for s in EffectiveFeeStatus}
    aging = {label: [0, Decimal("0")] for label, _, _ in AGING_BUCKETS}
    assigned = collected = outstanding = Decimal("0")
    for total_amount, paid_amount, due_amount, due_date, persisted in scan.all():
        view = compute_fee_view(today, due_date, due_amount, 0, persisted)
        counts[view.status] += 1
        due = to_decimal(due_amount)
        assigned += to_decimal(total_amount)
        collected += to_decimal(paid_amount)
        outstanding += due
        if due > 0:
            bucket = aging[_aging_bucket(view.days_overdue)]
            bucket[0] += 1
            bucket[1] += due

    percentage = Decimal("0.00")
    if assigned > 0:
        percentage = (collected / assigned * 100).quantize(Decimal("0.01"))

    by_department = await db.execute(
        select(
            Department.id,
            Department.name,
            func.count(FeeAccount.id),
            func.sum(FeeAccount.total_amount),
            func.sum(FeeAccount.paid_amount),
            func.sum(FeeAccount.due_amount),
        )
        .select_from(FeeAccount)
        .join(Student, FeeAccount.student_id == Student.id)
        .join(Department, Student.department_id == Department.id)
        .join(Semester, FeeAccount.semester_id == Semester.id)
        .where(*conditions)
        .group_by(Department.id, Department.name)
        .order_by(Department.name)
    )

    return FeeStatisticsReport(
        statistics=FeeStatistics(
            total_fees_assigned=sum(counts.values()),
            total_paid=counts[EffectiveFeeStatus.paid],
            total_pending=counts[EffectiveFeeStatus.pending],
            total_partial=counts[EffectiveFeeStatus.partial],
            total_overdue=counts[EffectiveFeeStatus.overdue],
            total_amount_assigned=assigned,
            total_amount_collected=collected,
            total_amount_due=outstanding,
            collection_percentage=percentage,
        ),
        aging=[AgingBucket(bucket=label, accounts=n, amount=amt) for label, (n, amt) in aging.items()],
        by_department=[
            DepartmentTotals(
                department_id=dept_id,
                department_name=name,
                accounts=n,
                amount_assigned=to_decimal(total),
                amount_collected=to_decimal(paid),
                amount_due=to_decimal(due),
            )
            for dept_id, name, n, total, paid, due in by_department.all()
        ],
    )
