from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from ..common.datetime_utils import format_iso_date, parse_iso_date
from ..core.enums import RequestPriority, RequestStatus, RequestType


@dataclass(frozen=True)
class ODRequestDetails:
    student_id: str
    student_name: str
    student_roll_number: str
    date: date
    class_id: str
    reason: str
    department: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "studentId": self.student_id,
            "studentName": self.student_name,
            "studentRollNumber": self.student_roll_number,
            "date": format_iso_date(self.date),
            "classId": self.class_id,
            "reason": self.reason,
            "department": self.department,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ODRequestDetails":
        return cls(
            student_id=str(data["studentId"]),
            student_name=data.get("studentName") or "",
            student_roll_number=data.get("studentRollNumber") or "",
            date=parse_iso_date(data["date"]),
            class_id=data["classId"],
            reason=data.get("reason") or "",
            department=data.get("department") or "",
        )


@dataclass(frozen=True)
class ApprovalRequest:
    request_id: str
    request_type: RequestType
    status: RequestStatus
    requested_by: str
    requested_by_role: str
    priority: RequestPriority
    details: ODRequestDetails
    created_at: Optional[datetime] = None
    decided_by: Optional[str] = None
    decided_at: Optional[datetime] = None
    remarks: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING


@dataclass(frozen=True)
class DecisionResult:
    """What the resolution callback changed."""

    request: ApprovalRequest
    entry_updated: bool
