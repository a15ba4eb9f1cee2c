from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Optional, Sequence

from ..attendance.model import AttendanceRecord, EffectiveStatus, StudentAttendanceEntry
from ..attendance.repository import AttendanceRepository
from ..core.constants import DEFAULT_PENDING_LIMIT, UPDATE_RETRY_ATTEMPTS
from ..core.enums import DecisionOutcome, EntryStatus, RecordStatus, RequestPriority, RequestStatus, RequestType
from ..core.exceptions import ApprovalReplay, ConcurrentUpdate, NotFound, ValidationError
from ..roster.model import FacultyIdentity, Student
from .model import ApprovalRequest, DecisionResult, ODRequestDetails
from .repository import ApprovalRepository

logger = logging.getLogger(__name__)

DEFAULT_OD_REASON = "On duty"


def status_after_change(entries: Iterable[StudentAttendanceEntry]) -> RecordStatus:
    if any(e.pending_od for e in entries):
        return RecordStatus.PENDING_OD_APPROVAL
    return RecordStatus.MODIFIED


def _written_back(record: AttendanceRecord, request: ApprovalRequest, outcome: DecisionOutcome) -> bool:
    """True when the student's entry already carries ``outcome`` and waits on nothing."""

    entry = record.entry_for_student(request.details.student_id)
    if entry is None or entry.pending_od:
        return False
    if outcome == DecisionOutcome.APPROVED:
        return entry.status == EntryStatus.OD
    return entry.status != EntryStatus.OD


class ODApprovalWorkflow:
    """OD state machine per attendance entry.

    ``Normal -> PendingApproval -> Approved | Rejected``. Only the attendance
    store opens requests; decisions arrive through ``apply_decision``.
    """

    def __init__(
        self,
        requests: ApprovalRepository,
        attendance: AttendanceRepository,
        *,
        priority: RequestPriority = RequestPriority.MEDIUM,
    ):
        self._requests = requests
        self._attendance = attendance
        self._priority = RequestPriority(priority)

    def open_request(
        self,
        *,
        student: Student,
        faculty: FacultyIdentity,
        class_id: str,
        department: str,
        attendance_date,
        prior: EntryStatus,
        reason: Optional[str] = None,
    ) -> EffectiveStatus:
        """``Normal -> PendingApproval``: persist a request, return the pending state."""

        if prior not in (EntryStatus.PRESENT, EntryStatus.ABSENT):
            raise ValidationError("Prior status of a pending OD must be present or absent")

        request_id = self._requests.next_request_id(RequestType.OD_REQUEST)
        request = ApprovalRequest(
            request_id=request_id,
            request_type=RequestType.OD_REQUEST,
            status=RequestStatus.PENDING,
            requested_by=faculty.faculty_id,
            requested_by_role=faculty.role,
            priority=self._priority,
            details=ODRequestDetails(
                student_id=student.student_id,
                student_name=student.name,
                student_roll_number=student.roll_number,
                date=attendance_date,
                class_id=class_id,
                reason=(reason or "").strip() or DEFAULT_OD_REASON,
                department=department,
            ),
        )
        self._requests.create(request)
        logger.info(
            "Opened OD request %s for %s (%s) on %s",
            request_id,
            student.roll_number,
            class_id,
            attendance_date,
        )
        return EffectiveStatus.pending_od(prior, request_id)

    def withdraw(self, request_ids: Iterable[str], *, actor: str, remark: str) -> None:
        """Close requests whose entry no longer waits on them."""

        for request_id in request_ids:
            if self._requests.decide(
                request_id=request_id,
                status=RequestStatus.REJECTED,
                decided_by=actor,
                remarks=remark,
            ):
                logger.info("Withdrew OD request %s (%s)", request_id, remark)
            else:
                logger.warning("OD request %s was already decided; nothing to withdraw", request_id)

    def apply_decision(
        self,
        *,
        request_id: str,
        outcome: DecisionOutcome,
        decided_by: str,
        remarks: Optional[str] = None,
    ) -> DecisionResult:
        """Resolution callback invoked by the external approval actor."""

        outcome = DecisionOutcome(outcome)
        request = self._requests.get(request_id)
        if not request:
            raise NotFound("Approval request not found", details={"request_id": request_id})
        if not request.is_pending:
            raise ApprovalReplay(
                "Approval request has already been resolved",
                details={"request_id": request_id, "status": request.status.value},
            )

        entry_updated = self._write_back(request, outcome=outcome, decided_by=decided_by)

        new_status = RequestStatus.APPROVED if outcome == DecisionOutcome.APPROVED else RequestStatus.REJECTED
        if not self._requests.decide(
            request_id=request_id,
            status=new_status,
            decided_by=decided_by,
            remarks=(remarks or "").strip() or None,
        ):
            raise ApprovalReplay("Approval request has already been resolved", details={"request_id": request_id})

        logger.info("OD request %s %s by %s", request_id, new_status.value, decided_by)
        return DecisionResult(
            request=replace(request, status=new_status, decided_by=decided_by, remarks=remarks),
            entry_updated=entry_updated,
        )

    def _write_back(self, request: ApprovalRequest, *, outcome: DecisionOutcome, decided_by: str) -> bool:
        d = request.details
        for _ in range(UPDATE_RETRY_ATTEMPTS):
            record = self._attendance.get(
                class_id=d.class_id,
                attendance_date=d.date,
                faculty_id=request.requested_by,
            )
            if record is None:
                logger.info("No attendance record for OD request %s; deciding request only", request.request_id)
                return False

            entry = record.entry_for_request(request.request_id)
            if entry is None and _written_back(record, request, outcome):
                # An earlier attempt saved the entry but failed to close the request.
                logger.warning("Entry for OD request %s already resolved; closing request", request.request_id)
                return True
            if entry is None or not entry.pending_od:
                raise ApprovalReplay(
                    "Attendance entry is no longer waiting on this request",
                    details={"request_id": request.request_id},
                )

            updated = self._resolve_entry(record, entry, outcome=outcome, reason=d.reason, actor=decided_by)
            if self._attendance.save(updated, expected_version=record.version):
                return True

        raise ConcurrentUpdate(
            "Attendance record changed while applying the decision, retry",
            details={"request_id": request.request_id},
        )

    @staticmethod
    def _resolve_entry(
        record: AttendanceRecord,
        entry: StudentAttendanceEntry,
        *,
        outcome: DecisionOutcome,
        reason: str,
        actor: str,
    ) -> AttendanceRecord:
        if outcome == DecisionOutcome.APPROVED:
            resolved = replace(entry, state=EffectiveStatus.od(), remarks=entry.remarks or reason)
        else:
            resolved = replace(entry, state=EffectiveStatus(entry.state.status))

        entries = [resolved if e.student_id == entry.student_id else e for e in record.entries]
        return record.with_entries(entries, status=status_after_change(entries), actor=actor)

    def list_pending(self, *, department: Optional[str] = None, limit: int = DEFAULT_PENDING_LIMIT) -> Sequence[ApprovalRequest]:
        return self._requests.list_by_status(
            status=RequestStatus.PENDING,
            request_type=RequestType.OD_REQUEST,
            department=department,
            limit=limit,
        )

    def pending_counts(self) -> dict[str, int]:
        return self._requests.count_pending_by_type()
