"""Global enums: values are stored as-is in the database."""

from enum import Enum


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class DecisionOutcome(str, Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class KycStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AccountStatus(str, Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    INACTIVE = "INACTIVE"


class Eligibility(str, Enum):
    """Membership of a credit account in the credit-eligible player set."""
    ACTIVE = "ACTIVE"
    REMOVED = "REMOVED"


class AdjustDirection(str, Enum):
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


class MovementType(str, Enum):
    LIMIT_SET = "LIMIT_SET"
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"
    DISBURSEMENT = "DISBURSEMENT"
    REMOVED = "REMOVED"


class Role(str, Enum):
    PLAYER = "player"
    CASHIER = "cashier"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"
    GRE = "gre"
    HR = "hr"
    STAFF = "staff"
    AFFILIATE = "affiliate"


class EventType(str, Enum):
    CREDIT_STATUS_CHANGED = "credit:status-changed"
    TABLE_STATUS_CHANGED = "table:status-changed"
    TABLES_UPDATED = "tables:updated"
    TABLE_AVAILABLE = "table:available"
    WAITLIST_POSITION_UPDATED = "waitlist:position-updated"
    WAITLIST_STATUS_CHANGED = "waitlist:status-changed"


class WaitlistStatus(str, Enum):
    WAITING = "WAITING"
    SEATED = "SEATED"
    CANCELLED = "CANCELLED"


class TableStatus(str, Enum):
    OPEN = "OPEN"
    FULL = "FULL"
    CLOSED = "CLOSED"
