"""
Fee account status rules: persisted status from amounts, and the read-time late-fee/overdue view.
Overdue is never stored; it is recomputed on every read from due date, due amount and today.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy import and_

from app.core.config import settings
from app.core.enums import EffectiveFeeStatus, FeeAccountStatus


@dataclass(frozen=True)
class FeeView:
    status: EffectiveFeeStatus
    days_overdue: int
    late_fee: Decimal
    total_payable: Decimal


def to_decimal(val) -> Decimal:
    """Money as Decimal; None is 0. Some drivers return Numeric columns as float."""
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def derive_status(paid_amount, due_amount) -> FeeAccountStatus:
    if to_decimal(due_amount) == 0:
        return FeeAccountStatus.paid
    if to_decimal(paid_amount) > 0:
        return FeeAccountStatus.partial
    return FeeAccountStatus.pending


def compute_fee_view(
    today: date,
    due_date: Optional[date],
    due_amount,
    late_fee_per_day,
    persisted_status: Union[FeeAccountStatus, str],
) -> FeeView:
    due = to_decimal(due_amount)
    if due > 0 and due_date is not None and today > due_date:
        days = (today - due_date).days
        late_fee = days * to_decimal(late_fee_per_day)
        return FeeView(EffectiveFeeStatus.overdue, days, late_fee, due + late_fee)
    return FeeView(EffectiveFeeStatus(FeeAccountStatus(persisted_status).value), 0, Decimal("0"), due)


def overdue_clause(fee_account_cls, today: date):
    """SQL form of the overdue rule, for filters that must run in the database."""
    return and_(fee_account_cls.due_amount > 0, fee_account_cls.due_date < today)


def late_fee_rate(structure_rate) -> Decimal:
    """Per-day rate of the originating structure; accounts without one use DEFAULT_LATE_FEE_PER_DAY."""
    if structure_rate is None:
        return settings.default_late_fee_per_day
    return to_decimal(structure_rate)
