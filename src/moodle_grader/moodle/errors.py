"""Moodle client exceptions."""

from enum import Enum


class EntityKind(str, Enum):
    """Kinds of Moodle entities that can be looked up by id."""

    COURSE = "Course"
    ASSIGNMENT = "Assignment"
    USER = "User"


class MoodleAPIError(Exception):
    """Base exception for Moodle API errors."""

    def __init__(self, message: str, error_code: str | None = None, debug_info: str | None = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.debug_info = debug_info


class MoodleTransportError(MoodleAPIError):
    """The request could not be sent or the response body could not be read."""

    pass


class MoodleDecodeError(MoodleAPIError):
    """Valid JSON that does not have the shape the caller expected."""

    pass


class MoodleAuthError(MoodleAPIError):
    """Authentication or authorization error."""

    pass


class MoodleServiceError(MoodleAPIError):
    """Moodle answered with an exception payload."""

    pass


class MoodleNotFoundError(MoodleAPIError):
    """No entity with the requested id was returned."""

    def __init__(self, kind: EntityKind, entity_id: int):
        super().__init__(f"{kind.value} (id: {entity_id}) not found!", "notfound")
        self.kind = kind
        self.entity_id = entity_id
