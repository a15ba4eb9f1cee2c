from __future__ import annotations

import dataclasses
from datetime import date, datetime
from enum import Enum
from functools import wraps
from typing import Any, Optional

from flask import g, jsonify, request

from ..core.exceptions import DomainError
from ..core.results import OperationResult
from ..roster.model import ClassContext, FacultyIdentity

# Business error code -> HTTP status; anything unlisted is a 400.
_STATUS_BY_CODE = {
    "VALIDATION_ERROR": 400,
    "INVALID_ROSTER": 422,
    "TOTALS_MISMATCH": 422,
    "NOT_FOUND": 404,
    "ATTENDANCE_ALREADY_EXISTS": 409,
    "HOLIDAY_CONFLICT": 409,
    "ATTENDANCE_EXISTS": 409,
    "HOLIDAY_EXISTS": 409,
    "IMMUTABLE_HISTORY": 409,
    "APPROVAL_REPLAY": 409,
    "CONCURRENT_UPDATE": 409,
}


def status_for_code(code: Optional[str]) -> int:
    return _STATUS_BY_CODE.get(code or "", 400)


def to_json(value: Any) -> Any:
    """Dataclasses, enums and dates into plain JSON values."""

    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        out = {f.name: to_json(getattr(value, f.name)) for f in dataclasses.fields(value)}
        for name in ("status", "pending_od", "od_request_id"):
            if hasattr(type(value), name) and isinstance(getattr(type(value), name), property):
                out[name] = to_json(getattr(value, name))
        return out
    if isinstance(value, dict):
        return {str(to_json(k)): to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [to_json(v) for v in value]
        return sorted(items) if isinstance(value, (set, frozenset)) else items
    return value


def render_result(result: OperationResult, *, success_status: int = 200, message: str = "Success"):
    if result.ok:
        return jsonify({"success": True, "data": to_json(result.data), "message": message}), success_status

    error = result.error
    return (
        jsonify(
            {
                "success": False,
                "code": error.code,
                "message": error.message,
                "data": to_json(error.details),
            }
        ),
        status_for_code(error.code),
    )


def faculty_from_headers() -> Optional[FacultyIdentity]:
    """Identity as forwarded by the upstream auth layer."""

    faculty_id = (request.headers.get("X-Faculty-Id") or "").strip()
    department = (request.headers.get("X-Faculty-Department") or "").strip()
    if not faculty_id or not department:
        return None
    return FacultyIdentity(faculty_id=faculty_id, department=department)


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def class_context_from(data: dict, department: str) -> ClassContext:
    """``classId`` wins over the separate cohort fields."""

    class_id = data.get("classId") or data.get("class_id")
    if class_id:
        return ClassContext.from_class_id(str(class_id), department)
    return ClassContext(
        department=department,
        batch_year=str(data.get("batchYear") or ""),
        year=str(data.get("year") or ""),
        semester_name=str(data.get("semesterName") or ""),
        section=str(data.get("section") or ""),
    )


def identity_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        faculty = faculty_from_headers()
        if faculty is None:
            return jsonify({"success": False, "code": "UNAUTHENTICATED", "message": "Faculty identity headers are required", "data": None}), 401
        g.faculty = faculty
        return view(*args, **kwargs)

    return wrapper


def render_domain_error(exc: DomainError):
    return render_result(OperationResult.failure(exc))
