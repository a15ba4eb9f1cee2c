from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class ClassContext:
    """Identifies a cohort-semester; combined with a date it forms the unit of attendance."""

    department: str
    batch_year: str
    year: str
    semester_name: str
    section: str

    def __post_init__(self):
        for field_name in ("department", "batch_year", "year", "semester_name", "section"):
            value = getattr(self, field_name)
            if not value or not str(value).strip():
                raise ValidationError(f"Class context field '{field_name}' is required")
            if "_" in str(value) and field_name != "department":
                raise ValidationError(f"Class context field '{field_name}' cannot contain '_'")

    @property
    def class_id(self) -> str:
        return f"{self.batch_year}_{self.year}_{self.semester_name}_{self.section}"

    @classmethod
    def from_class_id(cls, class_id: str, department: str) -> "ClassContext":
        parts = (class_id or "").split("_")
        if len(parts) != 4:
            raise ValidationError(
                "Invalid classId format. Expected batch_year_semester_section",
                details={"class_id": class_id},
            )
        batch_year, year, semester_name, section = parts
        return cls(
            department=department,
            batch_year=batch_year,
            year=year,
            semester_name=semester_name,
            section=section,
        )


@dataclass(frozen=True)
class Student:
    """Enrolled student as supplied by the roster collaborator."""

    student_id: str
    roll_number: str
    name: str
    email: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class FacultyIdentity:
    """Validated faculty identity supplied by the authentication layer."""

    faculty_id: str
    department: str
    is_active: bool = True
    role: str = "faculty"
