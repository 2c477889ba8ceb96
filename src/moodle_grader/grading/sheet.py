"""
Grade sheet files.

``download-submissions`` writes one entry per submission with an empty
grade; the teacher fills in ``grade`` and ``feedback`` and hands the file
to ``upload-grades``.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ..moodle.models import Assignment, Course, Submission, User
from ..utils.logging import get_logger

logger = get_logger(__name__)


class GradeSheetError(Exception):
    """A grade sheet file is missing required fields or has bad values."""

    pass


def _as_int(data: dict[str, Any], key: str, where: str) -> int:
    try:
        value = data[key]
    except KeyError:
        raise GradeSheetError(f"{where}: missing '{key}'") from None
    if isinstance(value, bool) or not isinstance(value, int):
        raise GradeSheetError(f"{where}: '{key}' must be an integer, got {value!r}")
    return value


@dataclass
class GradeEntry:
    """One student's row in a grade sheet."""

    user_id: int
    full_name: str = ""
    email: str = ""
    submitted_at: str = ""
    late_seconds: int = 0
    files: list[str] = field(default_factory=list)
    grade: float | None = None
    feedback: str = ""

    @property
    def is_graded(self) -> bool:
        return self.grade is not None

    @classmethod
    def from_submission(cls, submission: Submission, user: User, assignment: Assignment) -> "GradeEntry":
        return cls(
            user_id=user.id,
            full_name=user.full_name,
            email=user.email,
            submitted_at=submission.submitted_at.isoformat(),
            late_seconds=submission.late_seconds(assignment),
            files=[str(f.full_path) for f in submission.files],
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], where: str = "entry") -> "GradeEntry":
        if not isinstance(data, dict):
            raise GradeSheetError(f"{where}: expected a mapping, got {type(data).__name__}")

        grade = data.get("grade")
        if grade is not None:
            if isinstance(grade, bool) or not isinstance(grade, (int, float)):
                raise GradeSheetError(f"{where}: 'grade' must be a number, got {grade!r}")
            grade = float(grade)

        return cls(
            user_id=_as_int(data, "user_id", where),
            full_name=str(data.get("full_name") or ""),
            email=str(data.get("email") or ""),
            submitted_at=str(data.get("submitted_at") or ""),
            late_seconds=int(data.get("late_seconds") or 0),
            files=[str(f) for f in data.get("files") or []],
            grade=grade,
            feedback=str(data.get("feedback") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "full_name": self.full_name,
            "email": self.email,
            "submitted_at": self.submitted_at,
            "late_seconds": self.late_seconds,
            "files": list(self.files),
            "grade": self.grade,
            "feedback": self.feedback,
        }


@dataclass
class GradeSheet:
    """Grades staged for one assignment."""

    course_id: int
    assignment_id: int
    assignment: str = ""
    max_grade: float | None = None
    submissions: list[GradeEntry] = field(default_factory=list)

    @classmethod
    def for_assignment(cls, course: Course, assignment: Assignment) -> "GradeSheet":
        return cls(
            course_id=course.id,
            assignment_id=assignment.id,
            assignment=assignment.name,
            max_grade=assignment.max_grade,
        )

    @classmethod
    def from_dict(cls, data: Any) -> "GradeSheet":
        if not isinstance(data, dict):
            raise GradeSheetError("Grade sheet must be a mapping at the top level")

        entries = data.get("submissions") or []
        if not isinstance(entries, list):
            raise GradeSheetError("'submissions' must be a list")

        max_grade = data.get("max_grade")
        return cls(
            course_id=_as_int(data, "course_id", "grade sheet"),
            assignment_id=_as_int(data, "assignment_id", "grade sheet"),
            assignment=str(data.get("assignment") or ""),
            max_grade=float(max_grade) if max_grade is not None else None,
            submissions=[
                GradeEntry.from_dict(entry, where=f"submissions[{i}]")
                for i, entry in enumerate(entries)
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "course_id": self.course_id,
            "assignment_id": self.assignment_id,
            "assignment": self.assignment,
            "max_grade": self.max_grade,
            "submissions": [entry.to_dict() for entry in self.submissions],
        }


def load_grade_sheet(path: Path) -> GradeSheet:
    """Read a grade sheet from YAML.

    Raises:
        FileNotFoundError: If the file does not exist
        GradeSheetError: If the file is not valid YAML or misses required fields
    """
    if not path.exists():
        raise FileNotFoundError(f"Grade sheet not found: {path}")

    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise GradeSheetError(f"Invalid YAML in {path}: {e}") from e

    sheet = GradeSheet.from_dict(data)
    logger.debug(f"Loaded {len(sheet.submissions)} entries from {path}")
    return sheet


def write_grade_sheet(sheet: GradeSheet, path: Path) -> Path:
    """Write a grade sheet as YAML, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(sheet.to_dict(), f, sort_keys=False, allow_unicode=True)
    logger.info(f"Wrote grade sheet with {len(sheet.submissions)} entries to {path}")
    return path
