"""Voucher and receipt number candidates. Uniqueness is enforced by the store; callers retry on collision."""

import secrets
from datetime import date
from typing import Optional


def _year_month(on: Optional[date]) -> str:
    on = on or date.today()
    return f"{on.year}{on.month:02d}"


def generate_voucher_number(institution_code: str, roll_no: str, on: Optional[date] = None) -> str:
    """<INSTITUTION>-<YYYYMM>-<ROLL_NO>-<4 digits>, e.g. GCL-202610-CS-21-4821."""
    suffix = 1000 + secrets.randbelow(9000)
    return f"{institution_code.strip().upper()}-{_year_month(on)}-{roll_no.strip()}-{suffix}"


def generate_receipt_number(on: Optional[date] = None) -> str:
    """RCP-<YYYYMM>-<5 digits>."""
    suffix = 10000 + secrets.randbelow(90000)
    return f"RCP-{_year_month(on)}-{suffix}"
