from __future__ import annotations

import calendar
import logging
from datetime import date
from typing import Sequence

from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import is_weekend, iter_dates
from ..common.validators import require_date_range, require_max_length, require_non_empty
from ..core.constants import MAX_HOLIDAY_REASON_LENGTH
from ..core.enums import HolidayScope
from ..core.exceptions import AttendanceExists, HolidayExists, NotFound, ValidationError
from ..legacy.service import LegacyRosterStore
from ..roster.model import ClassContext
from .model import Holiday, HolidayCheck, HolidaySummary
from .repository import HolidayRepository

logger = logging.getLogger(__name__)


def _clean_reason(reason: str) -> str:
    reason = require_non_empty(reason, "Holiday reason")
    require_max_length(reason, "Holiday reason", MAX_HOLIDAY_REASON_LENGTH)
    return reason


class HolidayService:
    """Holiday calendar per class or per department.

    A class-day is either a holiday or carries attendance, never both; the
    attendance side of that rule is checked by ``AttendanceService``.
    """

    def __init__(self, holidays: HolidayRepository, attendance: AttendanceRepository, legacy: LegacyRosterStore):
        self._holidays = holidays
        self._attendance = attendance
        self._legacy = legacy

    def is_holiday(self, day: date, context: ClassContext) -> HolidayCheck:
        found = self._holidays.list_active_in_range(start_date=day, end_date=day, context=context)
        if not found:
            return HolidayCheck(is_holiday=False)
        return HolidayCheck(is_holiday=True, holiday=found[0])

    def list_in_range(self, start: date, end: date, context: ClassContext) -> Sequence[Holiday]:
        require_date_range(start, end)
        return self._holidays.list_active_in_range(start_date=start, end_date=end, context=context)

    def holiday_dates(self, start: date, end: date, context: ClassContext) -> set[date]:
        return {h.holiday_date for h in self.list_in_range(start, end, context)}

    def working_days(self, start: date, end: date, context: ClassContext) -> list[date]:
        """Dates in ``[start, end]`` that are neither weekend nor holiday."""

        off = self.holiday_dates(start, end, context)
        return [d for d in iter_dates(start, end) if not is_weekend(d) and d not in off]

    def declare(
        self,
        *,
        day: date,
        context: ClassContext,
        reason: str,
        scope: HolidayScope,
        declared_by: str,
    ) -> Holiday:
        reason = _clean_reason(reason)
        declared_by = require_non_empty(declared_by, "Declared by")
        holiday = Holiday.for_scope(
            holiday_date=day,
            reason=reason,
            scope=scope,
            context=context,
            declared_by=declared_by,
        )

        if self._holidays.find_live_by_key(holiday):
            logger.warning("Holiday already declared: %s %s %s", holiday.scope.value, context.class_id, day)
            raise HolidayExists(
                f"Holiday already declared for {day.isoformat()}",
                details={"date": day.isoformat(), "scope": holiday.scope.value},
            )

        if self._has_attendance(holiday, context):
            logger.warning("Refused holiday on %s for %s: attendance exists", day, context.class_id)
            raise AttendanceExists(
                "Cannot declare holiday: attendance already recorded for this date",
                details={"date": day.isoformat(), "scope": holiday.scope.value},
            )

        created = self._holidays.insert(holiday)
        logger.info("Declared %s holiday %s on %s (%s)", created.scope.value, created.holiday_id, day, reason)
        return created

    def _has_attendance(self, holiday: Holiday, context: ClassContext) -> bool:
        day = holiday.holiday_date
        if holiday.scope == HolidayScope.GLOBAL:
            if self._attendance.exists_for_department(department=context.department, attendance_date=day):
                return True
            return self._legacy.exists(department=context.department, day=day)

        if self._attendance.exists_for_class(class_id=context.class_id, attendance_date=day):
            return True
        return self._legacy.exists(department=context.department, day=day, class_id=context.class_id)

    def revoke(self, *, holiday_id: int, actor: str) -> None:
        actor = require_non_empty(actor, "Actor")
        if not self._holidays.soft_delete(holiday_id=int(holiday_id), deleted_by=actor):
            raise NotFound("Holiday not found", details={"holiday_id": holiday_id})
        logger.info("Revoked holiday %s by %s", holiday_id, actor)

    def update_reason(self, *, holiday_id: int, reason: str, actor: str) -> Holiday:
        reason = _clean_reason(reason)
        actor = require_non_empty(actor, "Actor")

        current = self._holidays.get(int(holiday_id))
        if current is None or not current.is_live:
            raise NotFound("Holiday not found", details={"holiday_id": holiday_id})

        self._holidays.update_reason(holiday_id=int(holiday_id), reason=reason, updated_by=actor)
        updated = self._holidays.get(int(holiday_id))
        if updated is None:
            raise NotFound("Holiday not found", details={"holiday_id": holiday_id})
        return updated

    def summary(self, start: date, end: date, context: ClassContext) -> HolidaySummary:
        holidays = list(self.list_in_range(start, end, context))
        off = {h.holiday_date for h in holidays}
        total_days = (end - start).days + 1
        working = sum(1 for d in iter_dates(start, end) if not is_weekend(d) and d not in off)
        return HolidaySummary(
            holiday_count=len(off),
            working_days=working,
            total_days=total_days,
            holidays=holidays,
        )

    def month_calendar(self, year: int, month: int, context: ClassContext) -> Sequence[Holiday]:
        if not 1 <= int(month) <= 12:
            raise ValidationError("Month must be between 1 and 12")
        last = calendar.monthrange(int(year), int(month))[1]
        return self.list_in_range(date(int(year), int(month), 1), date(int(year), int(month), last), context)
