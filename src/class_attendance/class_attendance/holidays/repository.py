from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..roster.model import ClassContext
from .model import Holiday


class HolidayRepository(Protocol):
    def list_active_in_range(self, *, start_date: date, end_date: date, context: ClassContext) -> Sequence[Holiday]:
        """Live holidays matching the department (global) or the exact class scope, by date."""

        raise NotImplementedError

    def find_live_by_key(self, holiday: Holiday) -> Optional[Holiday]:
        raise NotImplementedError

    def get(self, holiday_id: int) -> Optional[Holiday]:
        raise NotImplementedError

    def insert(self, holiday: Holiday) -> Holiday:
        """Raises ``HolidayExists`` when the scoped unique key is taken."""

        raise NotImplementedError

    def soft_delete(self, *, holiday_id: int, deleted_by: str) -> bool:
        raise NotImplementedError

    def update_reason(self, *, holiday_id: int, reason: str, updated_by: str) -> bool:
        raise NotImplementedError
