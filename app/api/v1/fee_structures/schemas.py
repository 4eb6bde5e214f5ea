"""Fee structure schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class FeeStructureCreate(BaseModel):
    department_id: UUID
    semester_number: int = Field(..., ge=1)
    session_id: UUID
    tuition_fee: Decimal = Field(Decimal("0"), ge=0)
    lab_fee: Decimal = Field(Decimal("0"), ge=0)
    library_fee: Decimal = Field(Decimal("0"), ge=0)
    sports_fee: Decimal = Field(Decimal("0"), ge=0)
    exam_fee: Decimal = Field(Decimal("0"), ge=0)
    admission_fee: Decimal = Field(Decimal("0"), ge=0)
    other_fee: Decimal = Field(Decimal("0"), ge=0)
    late_fee_per_day: Optional[Decimal] = Field(None, ge=0, description="Defaults to DEFAULT_LATE_FEE_PER_DAY")
    description: Optional[str] = None


class FeeStructureUpdate(BaseModel):
    """Partial update. Omitted fields keep their stored value; total_fee is always recomputed."""

    tuition_fee: Optional[Decimal] = Field(None, ge=0)
    lab_fee: Optional[Decimal] = Field(None, ge=0)
    library_fee: Optional[Decimal] = Field(None, ge=0)
    sports_fee: Optional[Decimal] = Field(None, ge=0)
    exam_fee: Optional[Decimal] = Field(None, ge=0)
    admission_fee: Optional[Decimal] = Field(None, ge=0)
    other_fee: Optional[Decimal] = Field(None, ge=0)
    late_fee_per_day: Optional[Decimal] = Field(None, ge=0)
    description: Optional[str] = None


class FeeComponents(BaseModel):
    tuition_fee: Decimal
    lab_fee: Decimal
    library_fee: Decimal
    sports_fee: Decimal
    exam_fee: Decimal
    admission_fee: Decimal
    other_fee: Decimal
    total_fee: Decimal


class FeeStructureResponse(BaseModel):
    id: UUID
    department_id: UUID
    department_name: Optional[str] = None
    department_code: Optional[str] = None
    semester_number: int
    session_id: UUID
    session_name: Optional[str] = None
    fee_components: FeeComponents
    late_fee_per_day: Decimal
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime
