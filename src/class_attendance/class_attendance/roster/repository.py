from __future__ import annotations

from typing import Protocol, Sequence

from .model import ClassContext, Student


class RosterProvider(Protocol):
    """Interface to the student management product.

    Note (DIP): services depend on this interface, not on where rosters live.
    """

    def list_enrolled(self, context: ClassContext) -> Sequence[Student]:
        """Active students enrolled in the class context, ordered by roll number."""

        raise NotImplementedError
