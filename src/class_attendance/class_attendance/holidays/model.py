from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import HolidayScope
from ..roster.model import ClassContext


@dataclass(frozen=True)
class Holiday:
    holiday_date: date
    reason: str
    scope: HolidayScope
    department: str
    declared_by: str
    batch_year: Optional[str] = None
    section: Optional[str] = None
    semester_name: Optional[str] = None
    holiday_id: Optional[int] = None
    is_active: bool = True
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def for_scope(
        cls,
        *,
        holiday_date: date,
        reason: str,
        scope: HolidayScope,
        context: ClassContext,
        declared_by: str,
    ) -> "Holiday":
        scope = HolidayScope(scope)
        if scope == HolidayScope.GLOBAL:
            return cls(
                holiday_date=holiday_date,
                reason=reason,
                scope=scope,
                department=context.department,
                declared_by=declared_by,
            )
        return cls(
            holiday_date=holiday_date,
            reason=reason,
            scope=scope,
            department=context.department,
            declared_by=declared_by,
            batch_year=context.batch_year,
            section=context.section,
            semester_name=context.semester_name,
        )

    @property
    def is_live(self) -> bool:
        return self.is_active and not self.is_deleted

    @property
    def scope_key(self) -> tuple:
        """Uniqueness key among live holidays."""
        if self.scope == HolidayScope.GLOBAL:
            return (self.holiday_date, self.department, self.scope.value)
        return (
            self.holiday_date,
            self.department,
            self.scope.value,
            self.batch_year,
            self.section,
            self.semester_name,
        )

    def applies_to(self, context: ClassContext) -> bool:
        if not self.is_live or self.department != context.department:
            return False
        if self.scope == HolidayScope.GLOBAL:
            return True
        return (
            self.batch_year == context.batch_year
            and self.section == context.section
            and self.semester_name == context.semester_name
        )


@dataclass(frozen=True)
class HolidayCheck:
    is_holiday: bool
    holiday: Optional[Holiday] = None


@dataclass(frozen=True)
class HolidaySummary:
    holiday_count: int
    working_days: int
    total_days: int
    holidays: list[Holiday] = field(default_factory=list)
