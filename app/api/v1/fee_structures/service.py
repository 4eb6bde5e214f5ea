"""Fee structure catalog: create, update (total always recomputed), list."""

from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.events import LedgerEvent
from app.core.exceptions import ConflictError, NotFoundError
from app.core.fee_status import to_decimal
from app.core.logging import get_logger
from app.core.models import FEE_COMPONENT_FIELDS, AcademicSession, Department, FeeStructure

from .schemas import FeeComponents, FeeStructureCreate, FeeStructureResponse, FeeStructureUpdate

logger = get_logger(__name__)


def compute_total_fee(components: Dict[str, Decimal]) -> Decimal:
    return sum((to_decimal(components.get(f)) for f in FEE_COMPONENT_FIELDS), Decimal("0"))


def _snapshot(fs: FeeStructure) -> Dict[str, str]:
    data = {f: str(to_decimal(getattr(fs, f))) for f in FEE_COMPONENT_FIELDS}
    data["total_fee"] = str(to_decimal(fs.total_fee))
    data["late_fee_per_day"] = str(to_decimal(fs.late_fee_per_day))
    return data


def _fs_to_response(
    fs: FeeStructure,
    department: Optional[Department] = None,
    session: Optional[AcademicSession] = None,
) -> FeeStructureResponse:
    return FeeStructureResponse(
        id=fs.id,
        department_id=fs.department_id,
        department_name=department.name if department else None,
        department_code=department.code if department else None,
        semester_number=fs.semester_number,
        session_id=fs.session_id,
        session_name=session.name if session else None,
        fee_components=FeeComponents(
            **{f: to_decimal(getattr(fs, f)) for f in FEE_COMPONENT_FIELDS},
            total_fee=to_decimal(fs.total_fee),
        ),
        late_fee_per_day=to_decimal(fs.late_fee_per_day),
        description=fs.description,
        created_at=fs.created_at,
        updated_at=fs.updated_at,
    )


async def create_fee_structure(
    db: AsyncSession,
    payload: FeeStructureCreate,
    changed_by: Optional[UUID] = None,
) -> Tuple[FeeStructureResponse, LedgerEvent]:
    department = await db.get(Department, payload.department_id)
    if not department:
        raise NotFoundError("Department not found")
    session = await db.get(AcademicSession, payload.session_id)
    if not session:
        raise NotFoundError("Session not found")

    existing = (
        await db.execute(
            select(FeeStructure.id).where(
                FeeStructure.department_id == payload.department_id,
                FeeStructure.semester_number == payload.semester_number,
                FeeStructure.session_id == payload.session_id,
            )
        )
    ).scalar_one_or_none()
    if existing:
        raise ConflictError("Fee structure already exists for this department, semester, and session")

    components = {f: to_decimal(getattr(payload, f)) for f in FEE_COMPONENT_FIELDS}
    late_fee = payload.late_fee_per_day
    if late_fee is None:
        late_fee = settings.default_late_fee_per_day
    fs = FeeStructure(
        department_id=payload.department_id,
        semester_number=payload.semester_number,
        session_id=payload.session_id,
        **components,
        total_fee=compute_total_fee(components),
        late_fee_per_day=late_fee,
        description=(payload.description or "").strip() or None,
    )
    try:
        db.add(fs)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Fee structure already exists for this department, semester, and session")
    await db.refresh(fs)
    logger.info("fee_structure_created", fee_structure_id=str(fs.id), total_fee=str(fs.total_fee))
    event = LedgerEvent(
        event_type="fee_structure.created",
        reference_table="fee_structures",
        reference_id=fs.id,
        actor_id=changed_by,
        new_value=_snapshot(fs),
    )
    return _fs_to_response(fs, department, session), event


async def update_fee_structure(
    db: AsyncSession,
    fee_structure_id: UUID,
    payload: FeeStructureUpdate,
    changed_by: Optional[UUID] = None,
) -> Tuple[FeeStructureResponse, LedgerEvent]:
    """Merge supplied fields and recompute total_fee. Fee accounts already billed keep their amounts."""
    fs = await db.get(FeeStructure, fee_structure_id)
    if not fs:
        raise NotFoundError("Fee structure not found")
    old_value = _snapshot(fs)

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        if field == "description":
            value = value.strip() or None
        setattr(fs, field, value)
    fs.total_fee = compute_total_fee({f: getattr(fs, f) for f in FEE_COMPONENT_FIELDS})
    await db.commit()
    await db.refresh(fs)

    department = await db.get(Department, fs.department_id)
    session = await db.get(AcademicSession, fs.session_id)
    event = LedgerEvent(
        event_type="fee_structure.updated",
        reference_table="fee_structures",
        reference_id=fs.id,
        actor_id=changed_by,
        old_value=old_value,
        new_value=_snapshot(fs),
    )
    return _fs_to_response(fs, department, session), event


async def get_fee_structure(db: AsyncSession, fee_structure_id: UUID) -> FeeStructureResponse:
    fs = await db.get(FeeStructure, fee_structure_id)
    if not fs:
        raise NotFoundError("Fee structure not found")
    department = await db.get(Department, fs.department_id)
    session = await db.get(AcademicSession, fs.session_id)
    return _fs_to_response(fs, department, session)


async def list_fee_structures(
    db: AsyncSession,
    department_id: Optional[UUID] = None,
    session_id: Optional[UUID] = None,
    semester_number: Optional[int] = None,
) -> List[FeeStructureResponse]:
    stmt = (
        select(FeeStructure, Department, AcademicSession)
        .join(Department, FeeStructure.department_id == Department.id)
        .join(AcademicSession, FeeStructure.session_id == AcademicSession.id)
    )
    if department_id is not None:
        stmt = stmt.where(FeeStructure.department_id == department_id)
    if session_id is not None:
        stmt = stmt.where(FeeStructure.session_id == session_id)
    if semester_number is not None:
        stmt = stmt.where(FeeStructure.semester_number == semester_number)
    stmt = stmt.order_by(FeeStructure.created_at.desc())
    result = await db.execute(stmt)
    return [_fs_to_response(fs, dept, sess) for fs, dept, sess in result.all()]
