"""
Moodle integration module.

Handles communication with Moodle LMS via its web services API,
including listing assignments, downloading submissions, and uploading grades.
"""

from .api import MoodleAPI, Session
from .errors import (
    EntityKind,
    MoodleAPIError,
    MoodleAuthError,
    MoodleDecodeError,
    MoodleNotFoundError,
    MoodleServiceError,
    MoodleTransportError,
)
from .models import (
    Assignment,
    Course,
    Submission,
    SubmissionFile,
    User,
    clamp_grade,
    extract_submission_files,
    format_duration,
    strip_leading_separator,
)

__all__ = [
    # API client
    "MoodleAPI",
    "Session",
    # Exceptions
    "EntityKind",
    "MoodleAPIError",
    "MoodleAuthError",
    "MoodleDecodeError",
    "MoodleNotFoundError",
    "MoodleServiceError",
    "MoodleTransportError",
    # Models
    "Assignment",
    "Course",
    "Submission",
    "SubmissionFile",
    "User",
    "clamp_grade",
    "extract_submission_files",
    "format_duration",
    "strip_leading_separator",
]
