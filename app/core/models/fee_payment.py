"""Fee payment: immutable record of money received against a fee account."""

import uuid

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base, utc_now


class FeePayment(Base):
    """Append-only. Never updated or deleted."""

    __tablename__ = "fee_payments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="chk_fee_payment_amount_positive"),
        CheckConstraint(
            "method IN ('cash','bank','online','cheque')",
            name="chk_fee_payment_method",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    fee_account_id = Column(
        UUID(as_uuid=True),
        ForeignKey("fee_accounts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    amount = Column(Numeric(12, 2), nullable=False)
    method = Column(String(20), nullable=False)
    transaction_id = Column(String(100), nullable=True)
    payment_date = Column(Date, nullable=False)
    receipt_no = Column(String(50), nullable=False, unique=True)
    recorded_by = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    fee_account = relationship("FeeAccount", backref="payments")
