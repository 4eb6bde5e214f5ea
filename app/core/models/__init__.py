from app.core.models.department import Department
from app.core.models.academic_session import AcademicSession
from app.core.models.semester import Semester
from app.core.models.student import Student
from app.core.models.fee_structure import FEE_COMPONENT_FIELDS, FeeStructure
from app.core.models.fee_account import FeeAccount
from app.core.models.fee_voucher import FeeVoucher
from app.core.models.fee_payment import FeePayment
from app.core.models.fee_audit_log import FeeAuditLog

__all__ = [
    "AcademicSession",
    "Department",
    "FEE_COMPONENT_FIELDS",
    "FeeAccount",
    "FeeAuditLog",
    "FeePayment",
    "FeeStructure",
    "FeeVoucher",
    "Semester",
    "Student",
]
