from enum import Enum


class StudentStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    graduated = "graduated"
    suspended = "suspended"
    dropped = "dropped"


class FeeAccountStatus(str, Enum):
    """Persisted status of a fee account. Always derivable from paid/due amounts."""

    pending = "pending"
    partial = "partial"
    paid = "paid"


class EffectiveFeeStatus(str, Enum):
    """Read-time status: persisted status plus the overdue projection."""

    pending = "pending"
    partial = "partial"
    paid = "paid"
    overdue = "overdue"


class UnpaidStatusFilter(str, Enum):
    pending = "pending"
    partial = "partial"
    overdue = "overdue"
    all = "all"


class VoucherStatus(str, Enum):
    issued = "issued"
    paid = "paid"
    expired = "expired"
    cancelled = "cancelled"


class PaymentMethod(str, Enum):
    cash = "cash"
    bank = "bank"
    online = "online"
    cheque = "cheque"


class OnlineGateway(str, Enum):
    jazzcash = "jazzcash"
    easypaisa = "easypaisa"
    bank = "bank"


class GatewayStatus(str, Enum):
    pending = "pending"
    success = "success"
    failed = "failed"


class CollectionGroupBy(str, Enum):
    date = "date"
    department = "department"
    method = "method"
