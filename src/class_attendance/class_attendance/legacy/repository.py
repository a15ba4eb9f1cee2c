from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import LegacyRosterRecord


class LegacyRosterRepository(Protocol):
    """Read-only access to the legacy ``class_attendance`` rows.

    Instants are naive UTC datetimes; calendar-date conversion belongs to
    ``LegacyRosterStore``.
    """

    def find_exact(self, *, class_assigned: str, department: str, recorded_at: datetime) -> Optional[LegacyRosterRecord]:
        raise NotImplementedError

    def find_between(
        self,
        *,
        class_assigned: str,
        department: str,
        start: datetime,
        end: datetime,
        exclude: Sequence[datetime] = (),
    ) -> Optional[LegacyRosterRecord]:
        """Earliest row whose instant falls in ``[start, end]``.

        Rows stored exactly at an instant in ``exclude`` are skipped.
        """

        raise NotImplementedError

    def exists_between(
        self,
        *,
        department: str,
        start: datetime,
        end: datetime,
        class_assigned: Optional[str] = None,
        exclude: Sequence[datetime] = (),
    ) -> bool:
        raise NotImplementedError
