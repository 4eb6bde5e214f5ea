"""Fee account: a student's billing obligation for one semester."""

import uuid

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.core.enums import FeeAccountStatus
from app.db.session import Base, utc_now


class FeeAccount(Base):
    """
    total_amount = paid_amount + due_amount at all times (enforced by check constraint).
    Created by fee assignment with paid_amount = 0; balances change only through the payment ledger.
    status holds pending/partial/paid; overdue is derived on read.
    """

    __tablename__ = "fee_accounts"
    __table_args__ = (
        UniqueConstraint("student_id", "semester_id", name="uq_fee_account_student_semester"),
        CheckConstraint("paid_amount >= 0", name="chk_fee_account_paid_non_negative"),
        CheckConstraint("due_amount >= 0", name="chk_fee_account_due_non_negative"),
        CheckConstraint("total_amount = paid_amount + due_amount", name="chk_fee_account_balance"),
        CheckConstraint("status IN ('pending','partial','paid')", name="chk_fee_account_status"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="RESTRICT"), nullable=False, index=True)
    semester_id = Column(UUID(as_uuid=True), ForeignKey("semesters.id", ondelete="RESTRICT"), nullable=False)
    # NULL for custom amounts not taken from the catalog
    fee_structure_id = Column(
        UUID(as_uuid=True),
        ForeignKey("fee_structures.id", ondelete="RESTRICT"),
        nullable=True,
    )

    total_amount = Column(Numeric(12, 2), nullable=False)
    paid_amount = Column(Numeric(12, 2), nullable=False, default=0)
    due_amount = Column(Numeric(12, 2), nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default=FeeAccountStatus.pending.value)
    remarks = Column(Text, nullable=True)
    assigned_by = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    student = relationship("Student")
    semester = relationship("Semester")
    fee_structure = relationship("FeeStructure")
