import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.core.enums import StudentStatus
from app.db.session import Base, utc_now


class Student(Base):
    """Student record (maintained by the student module). Read by the ledger for cohorts and vouchers."""

    __tablename__ = "students"
    __table_args__ = (
        CheckConstraint(
            "status IN ('active','inactive','graduated','suspended','dropped')",
            name="chk_student_status",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    roll_no = Column(String(50), nullable=False, unique=True)
    name = Column(String(100), nullable=False)
    father_name = Column(String(100), nullable=True)
    cnic = Column(String(20), nullable=True)
    phone = Column(String(20), nullable=True)
    department_id = Column(UUID(as_uuid=True), ForeignKey("departments.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=StudentStatus.active.value)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    department = relationship("Department", backref="students")
