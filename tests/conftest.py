"""Shared fixtures: a fake Moodle site served through httpx.MockTransport."""

import json
from urllib.parse import parse_qs

import httpx
import pytest

from moodle_grader.moodle import MoodleAPI, Session

BASE_URL = "https://moodle.test"
TOKEN = "abc"
FILE_PATH = "/webservice/pluginfile.php/42/assignsubmission_file/submission_files/9/essay.pdf"

DUE = 1700000000


class FakeMoodle:
    """Answers login, web-service and file requests from canned data."""

    def __init__(self):
        self.login_response: dict = {"token": TOKEN}
        self.responses: dict[str, object] = {}
        self.files: dict[str, bytes] = {}
        self.requests: list[tuple[httpx.Request, dict[str, list[str]]]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        form = parse_qs(request.content.decode(), keep_blank_values=True)
        self.requests.append((request, form))
        path = request.url.path

        if path.endswith("/login/token.php"):
            return self._json(self.login_response)
        if path.endswith("/webservice/rest/server.php"):
            return self._json(self.responses[form["wsfunction"][0]])
        if path in self.files:
            return httpx.Response(200, content=self.files[path])
        return httpx.Response(404, text="not found")

    @staticmethod
    def _json(payload: object) -> httpx.Response:
        return httpx.Response(
            200,
            content=json.dumps(payload).encode(),
            headers={"content-type": "application/json"},
        )

    def calls(self, wsfunction: str) -> list[dict[str, list[str]]]:
        """Form bodies of every call made to ``wsfunction``."""
        return [form for _, form in self.requests if form.get("wsfunction") == [wsfunction]]


@pytest.fixture
def fake_moodle():
    return FakeMoodle()


@pytest.fixture
def api(fake_moodle):
    client = httpx.Client(transport=httpx.MockTransport(fake_moodle.handler))
    with MoodleAPI(client=client) as api:
        yield api


@pytest.fixture
def session():
    return Session(base_url=BASE_URL, token=TOKEN)


@pytest.fixture
def assignments_response():
    return {
        "courses": [
            {
                "id": 7,
                "fullname": "Intro to Programming",
                "assignments": [
                    {"id": 3, "name": "Essay", "grade": 100, "duedate": DUE},
                    {"id": 4, "name": "Project", "grade": 50.5, "duedate": DUE + 86400},
                ],
            }
        ],
        "warnings": [],
    }


@pytest.fixture
def submissions_response():
    return {
        "assignments": [
            {
                "assignmentid": 3,
                "submissions": [
                    {
                        "userid": 12,
                        "timemodified": DUE + 3 * 3600,
                        "plugins": [
                            {
                                "type": "onlinetext",
                                "editorfields": [{"name": "onlinetext", "text": "hello"}],
                            },
                            {
                                "type": "file",
                                "fileareas": [
                                    {
                                        "area": "other_files",
                                        "files": [
                                            {
                                                "filename": "ignored.txt",
                                                "fileurl": f"{BASE_URL}/ignored.txt",
                                                "filepath": "/",
                                            }
                                        ],
                                    },
                                    {
                                        "area": "submission_files",
                                        "files": [
                                            {
                                                "filename": "essay.pdf",
                                                "fileurl": f"{BASE_URL}{FILE_PATH}",
                                                "filepath": "/",
                                            }
                                        ],
                                    },
                                ],
                            },
                            {"type": "comments"},
                        ],
                    },
                    {
                        "userid": 13,
                        "timemodified": DUE - 60,
                        "plugins": [{"type": "file", "fileareas": [{"area": "submission_files"}]}],
                    },
                ],
            }
        ],
        "warnings": [],
    }


@pytest.fixture
def users_response():
    return [
        {"id": 12, "fullname": "Ada Lovelace", "email": "ada@example.edu"},
        {"id": 13, "fullname": "Alan Turing", "email": "alan@example.edu"},
    ]


@pytest.fixture
def populated_moodle(fake_moodle, assignments_response, submissions_response, users_response):
    """A fake site with one course, its submissions, users and one file."""
    fake_moodle.responses["mod_assign_get_assignments"] = assignments_response
    fake_moodle.responses["mod_assign_get_submissions"] = submissions_response
    fake_moodle.responses["core_user_get_users_by_field"] = users_response
    fake_moodle.responses["mod_assign_save_grade"] = None
    fake_moodle.files[FILE_PATH] = b"%PDF-1.4 essay"
    return fake_moodle
