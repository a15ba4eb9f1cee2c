from __future__ import annotations

from enum import Enum


class EntryStatus(str, Enum):
    """Concrete per-student status stored in an attendance entry."""

    PRESENT = "present"
    ABSENT = "absent"
    OD = "od"


class RecordStatus(str, Enum):
    """Lifecycle of a class-day attendance record."""

    FINALIZED = "finalized"
    MODIFIED = "modified"
    PENDING_OD_APPROVAL = "pending_od_approval"


class DailyStatus(str, Enum):
    """Status reported by the reconciled (read) view."""

    PRESENT = "Present"
    ABSENT = "Absent"
    OD = "OD"
    NOT_MARKED = "NotMarked"


class HolidayScope(str, Enum):
    CLASS = "class"
    GLOBAL = "global"


class RequestType(str, Enum):
    OD_REQUEST = "OD_REQUEST"


class RequestStatus(str, Enum):
    """Approval workflow states."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RequestPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class DecisionOutcome(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"
