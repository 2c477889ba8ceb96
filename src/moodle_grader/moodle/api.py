"""
Moodle REST API client.

This module talks to Moodle's Web Services REST API: token login, the
generic web-service endpoint, attachment download and grade upload.

Every operation takes the ``Session`` returned by ``MoodleAPI.authenticate``
explicitly; the client itself only owns the HTTP connection pool.

Moodle Web Services Documentation:
https://docs.moodle.org/dev/Web_service_API_functions
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, TypeVar

import httpx

from ..utils.logging import get_logger
from .errors import (
    EntityKind,
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
    decode_submission_groups,
)

logger = get_logger(__name__)

T = TypeVar("T")

LOGIN_PATH = "login/token.php"
LOGIN_SERVICE = "moodle_mobile_app"
WEBSERVICE_PATH = "webservice/rest/server.php"

# Error codes Moodle uses for a bad or expired token
AUTH_ERROR_CODES = ("invalidtoken", "accessexception", "requireloginerror", "invalidlogin")

# FORMAT_PLAIN in Moodle's text format constants
FEEDBACK_FORMAT_PLAIN = 2


def _join_url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path}"


@dataclass(frozen=True)
class Session:
    """An authenticated Moodle session.

    Created once by ``MoodleAPI.authenticate`` and never modified.
    """

    base_url: str
    token: str = field(repr=False)

    @property
    def service_url(self) -> str:
        """URL of the generic web-service endpoint."""
        return _join_url(self.base_url, WEBSERVICE_PATH)


# -----------------------------------------------------------------------------
# API Client
# -----------------------------------------------------------------------------


class MoodleAPI:
    """
    Moodle REST API client.

    Handles HTTP requests, response decoding and error mapping for
    Moodle's Web Services API. Each method makes a single request;
    nothing is retried or cached.

    Usage:
        with MoodleAPI() as api:
            session = api.authenticate("https://moodle.example.edu", "teacher", "secret")
            course = api.get_course_assignments(session, course_id=7)
    """

    # Request timeout in seconds
    DEFAULT_TIMEOUT = 30.0

    # Moodle web service response format
    RESPONSE_FORMAT = "json"

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        verify_ssl: bool = True,
        client: httpx.Client | None = None,
    ):
        """
        Initialize the Moodle API client.

        Args:
            timeout: Request timeout in seconds
            verify_ssl: Whether to verify SSL certificates
            client: Preconfigured HTTP client to use instead of creating one
        """
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self._client = client

    @property
    def client(self) -> httpx.Client:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                timeout=self.timeout,
                verify=self.verify_ssl,
                headers={"Accept": "application/json"},
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "MoodleAPI":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Core API Methods
    # -------------------------------------------------------------------------

    def authenticate(self, base_url: str, username: str, password: str) -> Session:
        """
        Exchange a username and password for a web-service token.

        Args:
            base_url: Base URL of the Moodle instance (e.g., https://moodle.example.edu)
            username: Moodle username
            password: Moodle password

        Returns:
            Session bound to ``base_url`` and the issued token

        Raises:
            MoodleAuthError: If Moodle did not issue a token
            MoodleTransportError: If the request failed
        """
        logger.info(f"Logging in to {base_url} as {username}")

        data = self._post(
            _join_url(base_url, LOGIN_PATH),
            params={"service": LOGIN_SERVICE},
            data={"username": username, "password": password},
        )

        if not isinstance(data, dict):
            raise MoodleDecodeError(f"Unexpected login response: {data!r}")

        token = data.get("token")
        if not token:
            message = data.get("error") or ""
            logger.error(f"Login rejected: {message}")
            raise MoodleAuthError(message, data.get("errorcode"), data.get("debuginfo"))

        return Session(base_url=base_url.rstrip("/"), token=str(token))

    def call(
        self,
        session: Session,
        wsfunction: str,
        params: dict[str, Any],
        decode: Callable[[Any], T],
    ) -> T:
        """
        Make a call to the Moodle Web Services API.

        Args:
            session: Authenticated session
            wsfunction: The Moodle web service function name
            params: Function parameters (lists and dicts are flattened)
            decode: Converts the parsed JSON into the typed result

        Returns:
            Whatever ``decode`` returns

        Raises:
            MoodleTransportError: If the HTTP request failed
            MoodleAuthError: If the token was rejected
            MoodleServiceError: If Moodle returned an exception payload
            MoodleDecodeError: If the response did not have the expected shape
        """
        request_data = {
            **self._flatten_params(params),
            "wstoken": session.token,
            "wsfunction": wsfunction,
        }

        logger.debug(f"Calling Moodle API: {wsfunction}")

        data = self._post(
            session.service_url,
            params={"moodlewsrestformat": self.RESPONSE_FORMAT},
            data=request_data,
        )

        # Check for Moodle-level errors
        self._check_error(data, wsfunction)

        try:
            return decode(data)
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            logger.error(f"Unexpected response shape from {wsfunction}: {e!r}")
            raise MoodleDecodeError(f"Could not decode {wsfunction} response: {e!r}") from e

    def _post(self, url: str, params: dict[str, str], data: dict[str, Any]) -> Any:
        """POST a form and return the parsed JSON body."""
        try:
            response = self.client.post(url, params=params, data=data)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error from {url}: {e}")
            raise MoodleTransportError(f"HTTP {e.response.status_code}: {e.response.text}") from e
        except httpx.RequestError as e:
            logger.error(f"Request error for {url}: {e}")
            raise MoodleTransportError(f"Request failed: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise MoodleTransportError(f"Response from {url} is not JSON: {e}") from e

    def _flatten_params(self, params: dict[str, Any], prefix: str = "") -> dict[str, Any]:
        """
        Flatten nested parameters for Moodle's expected format.

        Lists become array-style keys (``courseids[]``) carrying every item,
        dicts become bracketed keys (``plugindata[editor][text]``).

        Args:
            params: Parameters to flatten
            prefix: Current parameter prefix

        Returns:
            Flattened parameter dictionary
        """
        result: dict[str, Any] = {}

        for key, value in params.items():
            full_key = f"{prefix}[{key}]" if prefix else key

            if value is None:
                continue
            elif isinstance(value, dict):
                result.update(self._flatten_params(value, full_key))
            elif isinstance(value, (list, tuple)):
                result[f"{full_key}[]"] = [self._form_value(item) for item in value]
            else:
                result[full_key] = self._form_value(value)

        return result

    @staticmethod
    def _form_value(value: Any) -> Any:
        if isinstance(value, bool):
            return int(value)
        return value

    def _check_error(self, data: Any, wsfunction: str) -> None:
        """
        Check API response for errors.

        Args:
            data: Parsed response data
            wsfunction: The function that was called

        Raises:
            MoodleAuthError: If authentication/authorization failed
            MoodleServiceError: For other errors
        """
        if not isinstance(data, dict):
            return

        if "exception" in data or "errorcode" in data:
            error_code = data.get("errorcode", "unknown")
            message = data.get("message", data.get("exception", "Unknown error"))
            debug_info = data.get("debuginfo")

            logger.error(f"Moodle API error in {wsfunction}: [{error_code}] {message}")

            if error_code in AUTH_ERROR_CODES:
                raise MoodleAuthError(message, error_code, debug_info)
            raise MoodleServiceError(message, error_code, debug_info)

    # -------------------------------------------------------------------------
    # Courses, Submissions and Users
    # -------------------------------------------------------------------------

    def get_course_assignments(self, session: Session, course_id: int) -> Course:
        """
        Get a course and its assignments.

        Uses: mod_assign_get_assignments

        Raises:
            MoodleNotFoundError: If the response holds no course with this id
        """
        logger.info(f"Fetching assignments for course {course_id}")

        courses = self.call(
            session,
            "mod_assign_get_assignments",
            {"courseids": [course_id]},
            lambda data: [Course.from_api_response(c) for c in data["courses"]],
        )

        for course in courses:
            if course.id == course_id:
                logger.info(f"Found {len(course.assignments)} assignments in course {course_id}")
                return course

        raise MoodleNotFoundError(EntityKind.COURSE, course_id)

    def get_submissions(self, session: Session, assignment_id: int) -> list[Submission]:
        """
        Get the submissions for an assignment.

        Uses: mod_assign_get_submissions

        Raises:
            MoodleNotFoundError: If the response holds no group for this assignment
        """
        logger.info(f"Fetching submissions for assignment {assignment_id}")

        groups = self.call(
            session,
            "mod_assign_get_submissions",
            {"assignmentids": [assignment_id]},
            decode_submission_groups,
        )

        for group_id, submissions in groups:
            if group_id == assignment_id:
                logger.info(f"Found {len(submissions)} submissions for assignment {assignment_id}")
                return submissions

        raise MoodleNotFoundError(EntityKind.ASSIGNMENT, assignment_id)

    def get_user(self, session: Session, user_id: int) -> User:
        """
        Get a user by id.

        Uses: core_user_get_users_by_field

        Raises:
            MoodleNotFoundError: If the response holds no user with this id
        """
        logger.debug(f"Fetching user {user_id}")

        users = self.call(
            session,
            "core_user_get_users_by_field",
            {"field": "id", "values": [user_id]},
            lambda data: [User.from_api_response(u) for u in data],
        )

        for user in users:
            if user.id == user_id:
                return user

        raise MoodleNotFoundError(EntityKind.USER, user_id)

    # -------------------------------------------------------------------------
    # File Transfer
    # -------------------------------------------------------------------------

    def download_file(self, session: Session, file: SubmissionFile, destination: Path) -> Path:
        """
        Stream a submission attachment to a local file.

        The parent directory must already exist. A failed transfer leaves
        whatever was written so far in place.

        Args:
            session: Authenticated session
            file: Attachment to download
            destination: Local file to create

        Returns:
            The destination path

        Raises:
            MoodleTransportError: If the request or the stream failed
            OSError: If the local file could not be written
        """
        logger.debug(f"Downloading {file.full_path} to {destination}")

        try:
            with self.client.stream("POST", file.file_url, data={"token": session.token}) as response:
                response.raise_for_status()
                with open(destination, "wb") as fh:
                    for chunk in response.iter_bytes():
                        fh.write(chunk)
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error downloading {file.filename}: {e}")
            raise MoodleTransportError(f"HTTP {e.response.status_code} downloading {file.filename}") from e
        except httpx.HTTPError as e:
            logger.error(f"Transfer of {file.filename} failed: {e}")
            raise MoodleTransportError(f"Download of {file.filename} failed: {e}") from e

        return destination

    def upload_grade(
        self,
        session: Session,
        assignment: Assignment,
        user: User,
        grade: float,
        feedback: str | None = None,
    ) -> None:
        """
        Save a grade and a plain-text feedback comment for a student.

        Uses: mod_assign_save_grade

        The grade is clamped into ``[0, assignment.max_grade]`` instead of
        being rejected. The latest attempt is graded, no new attempt is
        added and the workflow state is left alone.

        Args:
            session: Authenticated session
            assignment: Assignment being graded
            user: Student receiving the grade
            grade: Numeric grade
            feedback: Feedback comment, trimmed before sending
        """
        clamped = clamp_grade(grade, assignment.max_grade)
        if clamped != grade:
            logger.warning(
                f"Grade {grade} for {user.full_name} is outside [0, {assignment.max_grade}], "
                f"sending {clamped}"
            )

        logger.info(f"Uploading grade {clamped} for user {user.id} on assignment {assignment.id}")

        self.call(
            session,
            "mod_assign_save_grade",
            {
                "assignmentid": assignment.id,
                "userid": user.id,
                "grade": clamped,
                "attemptnumber": -1,
                "addattempt": 0,
                "workflowstate": "",
                "applytoall": 0,
                "plugindata": {
                    "assignfeedbackcomments_editor": {
                        "text": (feedback or "").strip(),
                        "format": FEEDBACK_FORMAT_PLAIN,
                    }
                },
            },
            lambda data: None,
        )

