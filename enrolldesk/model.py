"""
Central data model definitions used across the project.

Records exchanged with the API stay plain dicts (exactly what the server
sends). This module describes them:
- EntityKind: per-resource metadata (paths, id field, ownership, read-only fields)
- Page: one page of list results plus pagination info
- small helpers shared by forms, list views and the terminal UI
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

Record = dict[str, Any]
Principal = dict[str, Any]

TIMESTAMP_FIELDS = ("created_at", "updated_at")


@dataclass(frozen=True)
class EntityKind:
    """
    Describes one REST resource collection of the enrollment API.
    """

    name: str
    plural: str
    id_field: str
    total_key: str
    # Field compared against the principal's instructor_id; None = no ownership concept
    owner_field: Optional[str] = None
    # Server-assigned or server-computed fields, never sent on create/update
    read_only: tuple[str, ...] = ()

    @property
    def path(self) -> str:
        return f"/{self.plural}"

    @property
    def label(self) -> str:
        return self.name.capitalize()

    def record_id(self, record: Record) -> Any:
        return record.get(self.id_field)


STUDENT = EntityKind(
    name="student",
    plural="students",
    id_field="student_id",
    total_key="totalStudents",
    read_only=("student_id", *TIMESTAMP_FIELDS),
)

COURSE = EntityKind(
    name="course",
    plural="courses",
    id_field="course_id",
    total_key="totalCourses",
    owner_field="instructor_id",
    read_only=(
        "course_id",
        "instructor_id",
        "enrolled_count",
        "instructor_title",
        "instructor_first_name",
        "instructor_last_name",
        "instructor_department",
        "instructor_email",
        *TIMESTAMP_FIELDS,
    ),
)

INSTRUCTOR = EntityKind(
    name="instructor",
    plural="instructors",
    id_field="instructor_id",
    total_key="totalInstructors",
    owner_field="instructor_id",
    read_only=("instructor_id", "course_count", *TIMESTAMP_FIELDS),
)

KINDS: dict[str, EntityKind] = {k.plural: k for k in (STUDENT, COURSE, INSTRUCTOR)}


@dataclass
class Page:
    """
    One page of results as returned by GET /<resource>?page&limit&search.
    """

    items: list[Record]
    page: int
    page_size: int
    total: int

    @property
    def page_count(self) -> int:
        if self.page_size <= 0:
            return 1
        return max(1, -(-self.total // self.page_size))

    @classmethod
    def from_response(cls, body: Any, kind: EntityKind, page: int, page_size: int) -> "Page":
        """
        Build a Page from the raw JSON body.

        The server does not always populate `pagination`, so:
        - missing currentPage -> the requested page
        - missing total       -> number of rows in `data`
        """
        body = body if isinstance(body, dict) else {}
        data = body.get("data")
        items = [x for x in data if isinstance(x, dict)] if isinstance(data, list) else []

        pagination = body.get("pagination")
        pagination = pagination if isinstance(pagination, dict) else {}

        current = _as_int(pagination.get("currentPage")) or page
        total = _as_int(pagination.get(kind.total_key)) or len(items)

        return cls(items=items, page=current, page_size=page_size, total=total)


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def same_id(a: Any, b: Any) -> bool:
    if a is None or b is None:
        return False
    return str(a).strip() == str(b).strip()


def can_manage(principal: Optional[Principal], record: Record, kind: EntityKind) -> bool:
    """
    May the current principal edit/delete `record`?

    Kinds without an owner field (students) are always manageable.
    Courses and instructors require a principal whose instructor_id matches
    the record's owner field. This is a UI rule only; the server decides.
    """
    if kind.owner_field is None:
        return True
    if not principal:
        return False
    return same_id(record.get(kind.owner_field), principal.get("instructor_id"))


def parse_date(value: Any) -> Optional[date]:
    """
    Accept date objects, 'YYYY-MM-DD' and ISO timestamps ('2025-01-15T00:00:00.000Z').
    Returns None for anything else.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if len(text) < 10:
        return None
    try:
        return datetime.strptime(text[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def course_status(course: Record, today: date | None = None) -> str:
    """
    Derive 'upcoming' / 'active' / 'completed' from the course dates.
    Presentation only, never sent to the server.
    """
    today = today or date.today()
    start = parse_date(course.get("start_date"))
    end = parse_date(course.get("end_date"))

    if start is not None and today < start:
        return "upcoming"
    if end is not None and today > end:
        return "completed"
    return "active"


def principal_name(principal: Optional[Principal]) -> str:
    if not principal:
        return ""
    bits = [str(principal.get(k) or "").strip() for k in ("title", "first_name", "last_name")]
    return " ".join(b for b in bits if b)


def kind_by_name(name: str) -> Optional[EntityKind]:
    """
    'student' / 'students' -> STUDENT, etc. None if unknown.
    """
    name = (name or "").strip().lower()
    for kind in KINDS.values():
        if name in (kind.name, kind.plural):
            return kind
    return None
