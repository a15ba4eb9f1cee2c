from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Sequence

from ..common.datetime_utils import coerce_date
from ..core.enums import DailyStatus
from ..roster.model import ClassContext, Student
from ..roster.repository import RosterProvider
from .converters import SOURCE_CURRENT, with_remarks_from
from .model import DailySnapshot, StudentDailyStatus, UnifiedDailyRecord
from .sources import CurrentRecordSource, HistoricalAttendanceSource

logger = logging.getLogger(__name__)


class ReconciliationResolver:
    """Produce one daily view from the current and legacy stores.

    Sources are tried in order and the first hit owns every status. When a
    legacy row wins a faculty-scoped lookup, a current record kept by another
    faculty for the same class-day may still supply per-student remarks.
    """

    def __init__(
        self,
        sources: Sequence[HistoricalAttendanceSource],
        roster: RosterProvider,
        *,
        remarks_source: Optional[CurrentRecordSource] = None,
    ):
        if not sources:
            raise ValueError("At least one attendance source is required")
        self._sources = tuple(sources)
        self._roster = roster
        self._remarks_source = remarks_source

    def lookup(self, context: ClassContext, day: date, *, faculty_id: Optional[str] = None) -> Optional[DailySnapshot]:
        for source in self._sources:
            snapshot = source.lookup(context, day, faculty_id=faculty_id)
            if snapshot is not None:
                logger.debug("Resolved %s on %s from %s", context.class_id, day, source.name)
                return self._with_donor_remarks(snapshot, context, day, faculty_id=faculty_id)
        return None

    def _with_donor_remarks(
        self,
        snapshot: DailySnapshot,
        context: ClassContext,
        day: date,
        *,
        faculty_id: Optional[str],
    ) -> DailySnapshot:
        if snapshot.source == SOURCE_CURRENT or faculty_id is None or self._remarks_source is None:
            return snapshot
        donor = self._remarks_source.lookup(context, day)
        return with_remarks_from(snapshot, donor) if donor else snapshot

    def resolve(
        self,
        context: ClassContext,
        day: date | str,
        *,
        faculty_id: Optional[str] = None,
        roster: Optional[Sequence[Student]] = None,
    ) -> Optional[UnifiedDailyRecord]:
        """``None`` when no store knows the class-day.

        ``roster`` lets range callers fetch enrolment once.
        """

        day = coerce_date(day)
        snapshot = self.lookup(context, day, faculty_id=faculty_id)
        if snapshot is None:
            return None

        if roster is None:
            roster = self._roster.list_enrolled(context)

        students = []
        for student in roster:
            status = snapshot.status_of(student.roll_number)
            marked = status != DailyStatus.NOT_MARKED
            students.append(
                StudentDailyStatus(
                    student_id=student.student_id,
                    roll_number=student.roll_number,
                    name=student.name,
                    status=status,
                    remarks=snapshot.remarks.get(student.roll_number),
                    marked_by=snapshot.marked_by if marked else None,
                    timestamp=snapshot.timestamp if marked else None,
                )
            )

        return UnifiedDailyRecord(
            class_id=context.class_id,
            day=day,
            source=snapshot.source,
            students=tuple(students),
        )

    def absentees(
        self,
        context: ClassContext,
        day: date | str,
        *,
        faculty_id: Optional[str] = None,
    ) -> list[StudentDailyStatus]:
        record = self.resolve(context, day, faculty_id=faculty_id)
        if record is None:
            return []
        return record.with_status(DailyStatus.ABSENT)
