"""Fee structure: priced bundle of fee components per department, semester number and session."""

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base, utc_now

# Order matters: it is the order of the breakdown on vouchers and student fee views.
FEE_COMPONENT_FIELDS = (
    "tuition_fee",
    "lab_fee",
    "library_fee",
    "sports_fee",
    "exam_fee",
    "admission_fee",
    "other_fee",
)


class FeeStructure(Base):
    """
    Catalog entry. total_fee is always the sum of the seven components and is recomputed on
    every write. Never deleted: fee accounts reference it for breakdown and late fee rate.
    """

    __tablename__ = "fee_structures"
    __table_args__ = (
        UniqueConstraint(
            "department_id",
            "semester_number",
            "session_id",
            name="uq_fee_structure_department_semester_session",
        ),
        CheckConstraint("late_fee_per_day >= 0", name="chk_fee_structure_late_fee"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    department_id = Column(UUID(as_uuid=True), ForeignKey("departments.id", ondelete="RESTRICT"), nullable=False)
    semester_number = Column(Integer, nullable=False)
    session_id = Column(UUID(as_uuid=True), ForeignKey("academic_sessions.id", ondelete="RESTRICT"), nullable=False)

    tuition_fee = Column(Numeric(12, 2), nullable=False, default=0)
    lab_fee = Column(Numeric(12, 2), nullable=False, default=0)
    library_fee = Column(Numeric(12, 2), nullable=False, default=0)
    sports_fee = Column(Numeric(12, 2), nullable=False, default=0)
    exam_fee = Column(Numeric(12, 2), nullable=False, default=0)
    admission_fee = Column(Numeric(12, 2), nullable=False, default=0)
    other_fee = Column(Numeric(12, 2), nullable=False, default=0)
    total_fee = Column(Numeric(12, 2), nullable=False, default=0)

    late_fee_per_day = Column(Numeric(12, 2), nullable=False, default=50)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    department = relationship("Department")
    session = relationship("AcademicSession")
