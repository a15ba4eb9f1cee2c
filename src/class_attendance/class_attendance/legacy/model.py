from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class LegacyRosterRecord:
    """Older roll-number-array representation of a class-day.

    ``recorded_at`` is the naive UTC instant the old write path stored, which
    is normally the local midnight of the class day.
    """

    legacy_id: int
    class_assigned: str
    department: str
    recorded_at: datetime
    present_students: frozenset[str]
    absent_students: frozenset[str]
    od_students: frozenset[str] = frozenset()
    faculty_id: Optional[str] = None
    total_students: int = 0
    total_present: int = 0
    total_absent: int = 0
    updated_at: Optional[datetime] = None

    def roll_sets(self) -> tuple[frozenset[str], frozenset[str], frozenset[str]]:
        return self.present_students, self.absent_students, self.od_students
