"""Moodle data models."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Any

from .errors import EntityKind, MoodleNotFoundError

# The only plugin/file area that holds submitted attachments
FILE_PLUGIN = "file"
SUBMISSION_FILES_AREA = "submission_files"


def timestamp_to_datetime(seconds: int) -> datetime:
    """Convert a Unix timestamp from Moodle into an aware UTC datetime.

    Raises:
        ValueError: If the timestamp is outside the platform's range
    """
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError) as e:
        raise ValueError(f"timestamp {seconds!r} out of range") from e


def _int_field(data: dict[str, Any], key: str) -> int:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"'{key}' must be an integer, got {value!r}")
    return value


def _number_field(data: dict[str, Any], key: str) -> float:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise TypeError(f"'{key}' must be a finite number, got {value!r}")
    return float(value)


def _str_field(data: dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise TypeError(f"'{key}' must be a string, got {value!r}")
    return value


def strip_leading_separator(path: str) -> str:
    """Drop leading ``/`` so the path can be joined under a local directory.

    Stripping is idempotent: ``strip(strip(p)) == strip(p)``.
    """
    return path.lstrip("/")


def clamp_grade(grade: float, max_grade: float) -> float:
    """Clamp a grade into ``[0, max_grade]``.

    Out-of-range input is corrected rather than rejected. NaN clamps to 0.
    """
    grade = float(grade)
    if math.isnan(grade):
        return 0.0
    return max(0.0, min(grade, float(max_grade)))


def format_duration(seconds: int) -> str:
    """Render a lateness duration like ``2d 3h 15m``."""
    if seconds <= 0:
        return "on time"

    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)

    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


@dataclass(frozen=True)
class User:
    """A Moodle user as returned by ``core_user_get_users_by_field``."""

    id: int
    full_name: str
    email: str

    def __str__(self) -> str:
        return f"{self.full_name} <{self.email}>"

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "User":
        """Create a User from Moodle API response data."""
        return cls(
            id=_int_field(data, "id"),
            full_name=_str_field(data, "fullname"),
            email=_str_field(data, "email"),
        )


@dataclass(frozen=True)
class SubmissionFile:
    """A file attached to a submission."""

    filename: str
    file_url: str
    relative_path: str = ""

    @property
    def full_path(self) -> PurePosixPath:
        """Path of the attachment relative to the submission root."""
        return PurePosixPath(self.relative_path) / self.filename

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "SubmissionFile":
        """Create a SubmissionFile from Moodle API response data."""
        return cls(
            filename=_str_field(data, "filename"),
            file_url=_str_field(data, "fileurl"),
            relative_path=strip_leading_separator(_str_field(data, "filepath")),
        )


def extract_submission_files(plugins: list[dict[str, Any]]) -> list[SubmissionFile]:
    """Pull the submitted attachments out of a submission's plugin list.

    Only the ``submission_files`` area of the ``file`` plugin is kept, and the
    first such area wins. Every other plugin and area is discarded.
    ``fileareas`` and ``files`` may be absent.
    """
    for plugin in plugins:
        if plugin["type"] != FILE_PLUGIN:
            continue
        for filearea in plugin.get("fileareas") or []:
            if filearea["area"] == SUBMISSION_FILES_AREA:
                return [SubmissionFile.from_api_response(f) for f in filearea.get("files") or []]
    return []


@dataclass(frozen=True)
class Submission:
    """A student's latest submission to an assignment."""

    user_id: int
    submitted_at: datetime
    files: list[SubmissionFile] = field(default_factory=list)

    def late_seconds(self, assignment: "Assignment") -> int:
        """Whole seconds past the due date, never negative."""
        return assignment.late_seconds(self)

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "Submission":
        """Create a Submission from Moodle API response data."""
        return cls(
            user_id=_int_field(data, "userid"),
            submitted_at=timestamp_to_datetime(_int_field(data, "timemodified")),
            files=extract_submission_files(data["plugins"]),
        )


@dataclass(frozen=True)
class Assignment:
    """A Moodle assignment."""

    id: int
    name: str
    max_grade: float
    due_date: datetime

    @property
    def due_date_display(self) -> str:
        return self.due_date.isoformat()

    def late_seconds(self, submission: Submission) -> int:
        """Whole seconds the submission arrived after the due date, never negative."""
        delta = submission.submitted_at - self.due_date
        return max(0, int(delta.total_seconds()))

    def clamp(self, grade: float) -> float:
        return clamp_grade(grade, self.max_grade)

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "Assignment":
        """Create an Assignment from Moodle API response data."""
        return cls(
            id=_int_field(data, "id"),
            name=_str_field(data, "name"),
            max_grade=_number_field(data, "grade"),
            due_date=timestamp_to_datetime(_int_field(data, "duedate")),
        )


@dataclass(frozen=True)
class Course:
    """A course together with its assignments."""

    id: int
    full_name: str
    assignments: list[Assignment] = field(default_factory=list)

    @property
    def title(self) -> str:
        return f"Course (id: {self.id}) :: {self.full_name}"

    def get_assignment(self, assignment_id: int) -> Assignment:
        """Find an assignment of this course by id.

        Raises:
            MoodleNotFoundError: If the course has no such assignment
        """
        for assignment in self.assignments:
            if assignment.id == assignment_id:
                return assignment
        raise MoodleNotFoundError(EntityKind.ASSIGNMENT, assignment_id)

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "Course":
        """Create a Course from one entry of ``mod_assign_get_assignments``."""
        return cls(
            id=_int_field(data, "id"),
            full_name=_str_field(data, "fullname"),
            assignments=[Assignment.from_api_response(a) for a in data["assignments"]],
        )


def decode_submission_groups(data: dict[str, Any]) -> list[tuple[int, list[Submission]]]:
    """Decode ``mod_assign_get_submissions`` into ``(assignment id, submissions)`` pairs."""
    return [
        (
            _int_field(group, "assignmentid"),
            [Submission.from_api_response(s) for s in group["submissions"]],
        )
        for group in data["assignments"]
    ]
