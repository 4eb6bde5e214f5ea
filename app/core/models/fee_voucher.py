"""Fee voucher: bank-payable instrument for one fee account."""

import uuid

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Index, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.core.enums import VoucherStatus
from app.db.session import Base, utc_now


class FeeVoucher(Base):
    """At most one voucher per fee account may be in status issued (partial unique index)."""

    __tablename__ = "fee_vouchers"
    __table_args__ = (
        CheckConstraint(
            "status IN ('issued','paid','expired','cancelled')",
            name="chk_fee_voucher_status",
        ),
        Index(
            "uq_fee_voucher_one_issued_per_account",
            "fee_account_id",
            unique=True,
            postgresql_where=text("status = 'issued'"),
            sqlite_where=text("status = 'issued'"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    fee_account_id = Column(UUID(as_uuid=True), ForeignKey("fee_accounts.id", ondelete="RESTRICT"), nullable=False)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="RESTRICT"), nullable=False)
    voucher_no = Column(String(50), nullable=False, unique=True)
    bank_name = Column(String(100), nullable=True)
    issue_date = Column(Date, nullable=False)
    valid_until = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default=VoucherStatus.issued.value)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    fee_account = relationship("FeeAccount", backref="vouchers")
    student = relationship("Student")
