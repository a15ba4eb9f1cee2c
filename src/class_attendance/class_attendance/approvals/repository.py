from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import RequestStatus, RequestType
from .model import ApprovalRequest


class ApprovalRepository(Protocol):
    def next_request_id(self, request_type: RequestType) -> str:
        """Allocate a human-readable id from an atomic per-type sequence."""

        raise NotImplementedError

    def create(self, request: ApprovalRequest) -> None:
        raise NotImplementedError

    def get(self, request_id: str) -> Optional[ApprovalRequest]:
        raise NotImplementedError

    def decide(
        self,
        *,
        request_id: str,
        status: RequestStatus,
        decided_by: str,
        remarks: Optional[str] = None,
    ) -> bool:
        """Compare-and-swap: only a pending request can be decided."""

        raise NotImplementedError

    def list_by_status(
        self,
        *,
        status: RequestStatus,
        request_type: Optional[RequestType] = None,
        department: Optional[str] = None,
        limit: int = 200,
    ) -> Sequence[ApprovalRequest]:
        raise NotImplementedError

    def count_pending_by_type(self) -> dict[str, int]:
        raise NotImplementedError
