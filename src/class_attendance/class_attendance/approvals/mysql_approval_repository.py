from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

from ..core.constants import OD_REQUEST_PREFIX
from ..core.enums import RequestPriority, RequestStatus, RequestType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json_object
from .model import ApprovalRequest, ODRequestDetails
from .repository import ApprovalRepository

_PREFIXES = {
    RequestType.OD_REQUEST: OD_REQUEST_PREFIX,
}

_COLUMNS = """
    request_id, request_type, status, requested_by, requested_by_role, priority,
    details, created_at, decided_by, decided_at, remarks
"""


def format_request_id(request_type: RequestType, seq: int, *, at: datetime) -> str:
    prefix = _PREFIXES.get(request_type, request_type.value[:3].upper())
    return f"{prefix}-{at.strftime('%Y%m%d%H%M%S')}-{int(seq):06d}"


class MySQLApprovalRepository(ApprovalRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_request(r: dict) -> ApprovalRequest:
        return ApprovalRequest(
            request_id=r["request_id"],
            request_type=RequestType(r["request_type"]),
            status=RequestStatus(r["status"]),
            requested_by=str(r["requested_by"]),
            requested_by_role=r["requested_by_role"],
            priority=RequestPriority(r["priority"]),
            details=ODRequestDetails.from_dict(load_json_object(r["details"])),
            created_at=r.get("created_at"),
            decided_by=r.get("decided_by"),
            decided_at=r.get("decided_at"),
            remarks=r.get("remarks"),
        )

    def next_request_id(self, request_type: RequestType) -> str:
        with db_cursor(self._conn_factory) as (_, cur):
            # LAST_INSERT_ID(expr) makes the increment and the read one atomic step per connection.
            cur.execute(
                """
                INSERT INTO approval_request_counters(request_type, seq)
                VALUES(%s, LAST_INSERT_ID(1))
                ON DUPLICATE KEY UPDATE seq = LAST_INSERT_ID(seq + 1)
                """,
                (request_type.value,),
            )
            cur.execute("SELECT LAST_INSERT_ID() AS seq")
            seq = int(fetchone(cur)["seq"])
        return format_request_id(request_type, seq, at=datetime.now(timezone.utc))

    def create(self, request: ApprovalRequest) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO approval_requests(
                    request_id, request_type, status, requested_by, requested_by_role,
                    priority, department, details
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    request.request_id,
                    request.request_type.value,
                    request.status.value,
                    request.requested_by,
                    request.requested_by_role,
                    request.priority.value,
                    request.details.department,
                    dump_json(request.details.to_dict()),
                ),
            )

    def get(self, request_id: str) -> Optional[ApprovalRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM approval_requests WHERE request_id=%s",
                (request_id,),
            )
            r = fetchone(cur)
            return self._to_request(r) if r else None

    def decide(
        self,
        *,
        request_id: str,
        status: RequestStatus,
        decided_by: str,
        remarks: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE approval_requests
                SET status=%s, decided_by=%s, decided_at=UTC_TIMESTAMP(), remarks=%s
                WHERE request_id=%s AND status=%s
                """,
                (
                    status.value,
                    decided_by,
                    remarks,
                    request_id,
                    RequestStatus.PENDING.value,
                ),
            )
            return cur.rowcount > 0

    def list_by_status(
        self,
        *,
        status: RequestStatus,
        request_type: Optional[RequestType] = None,
        department: Optional[str] = None,
        limit: int = 200,
    ) -> Sequence[ApprovalRequest]:
        clauses = ["status=%s"]
        params: list[object] = [status.value]

        if request_type is not None:
            clauses.append("request_type=%s")
            params.append(request_type.value)
        if department is not None:
            clauses.append("department=%s")
            params.append(department)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM approval_requests
                WHERE {where}
                ORDER BY created_at DESC
                LIMIT %s
                """,
                tuple(params + [int(limit)]),
            )
            return [self._to_request(r) for r in fetchall(cur)]

    def count_pending_by_type(self) -> dict[str, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT request_type, COUNT(*) AS n
                FROM approval_requests
                WHERE status=%s
                GROUP BY request_type
                """,
                (RequestStatus.PENDING.value,),
            )
            counts = {t.value: 0 for t in RequestType}
            for r in fetchall(cur):
                counts[r["request_type"]] = int(r["n"])
            return counts
