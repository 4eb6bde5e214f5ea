from datetime import date, timedelta
from decimal import Decimal

from app.core.config import settings
from app.core.enums import EffectiveFeeStatus, FeeAccountStatus
from app.core.fee_status import compute_fee_view, derive_status, late_fee_rate, to_decimal


DUE = date(2026, 2, 1)


def test_derive_status_from_amounts() -> None:
    assert derive_status(Decimal("0"), Decimal("12000")) == FeeAccountStatus.pending
    assert derive_status(Decimal("5000"), Decimal("7000")) == FeeAccountStatus.partial
    assert derive_status(Decimal("12000"), Decimal("0")) == FeeAccountStatus.paid
    # Zero-amount account is settled from the start
    assert derive_status(Decimal("0"), Decimal("0")) == FeeAccountStatus.paid


def test_not_overdue_on_or_before_due_date() -> None:
    for today in (DUE - timedelta(days=10), DUE):
        view = compute_fee_view(today, DUE, Decimal("12000"), Decimal("50"), "pending")
        assert view.status == EffectiveFeeStatus.pending
        assert view.days_overdue == 0
        assert view.late_fee == Decimal("0")
        assert view.total_payable == Decimal("12000")


def test_overdue_late_fee_is_days_times_rate() -> None:
    view = compute_fee_view(date(2026, 2, 11), DUE, Decimal("7000"), Decimal("50"), "partial")
    assert view.status == EffectiveFeeStatus.overdue
    assert view.days_overdue == 10
    assert view.late_fee == Decimal("500")
    assert view.total_payable == Decimal("7500")


def test_paid_account_is_never_overdue() -> None:
    view = compute_fee_view(date(2027, 1, 1), DUE, Decimal("0"), Decimal("50"), "paid")
    assert view.status == EffectiveFeeStatus.paid
    assert view.late_fee == Decimal("0")


def test_late_fee_is_monotonic_in_days() -> None:
    previous = Decimal("-1")
    for offset in range(0, 120, 7):
        view = compute_fee_view(DUE + timedelta(days=offset), DUE, Decimal("100"), Decimal("25"), "pending")
        assert view.late_fee >= previous
        previous = view.late_fee


def test_accepts_float_amounts_from_the_store() -> None:
    view = compute_fee_view(date(2026, 2, 3), DUE, 7000.0, 50.0, FeeAccountStatus.partial)
    assert view.late_fee == Decimal("100")
    assert view.total_payable == Decimal("7100")


def test_late_fee_rate_falls_back_to_configured_default() -> None:
    assert late_fee_rate(Decimal("25")) == Decimal("25")
    assert late_fee_rate(40.0) == Decimal("40")
    assert late_fee_rate(None) == settings.default_late_fee_per_day


def test_to_decimal_normalises_store_values() -> None:
    assert to_decimal(None) == Decimal("0")
    assert to_decimal(7000.5) == Decimal("7000.5")
    assert to_decimal(Decimal("12000.00")) == Decimal("12000.00")
