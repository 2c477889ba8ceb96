"""Tests for reading and writing grade sheets."""

from datetime import datetime, timedelta, timezone

import pytest
import yaml

from moodle_grader.grading import GradeEntry, GradeSheet, GradeSheetError, load_grade_sheet, write_grade_sheet
from moodle_grader.moodle import Assignment, Course, Submission, SubmissionFile, User

DUE = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)


@pytest.fixture
def assignment():
    return Assignment(id=3, name="Essay", max_grade=100.0, due_date=DUE)


@pytest.fixture
def sheet(assignment):
    course = Course(id=7, full_name="Intro", assignments=[assignment])
    sheet = GradeSheet.for_assignment(course, assignment)
    submission = Submission(
        user_id=12,
        submitted_at=DUE + timedelta(minutes=5),
        files=[SubmissionFile("main.py", "https://moodle.test/main.py", "src/")],
    )
    user = User(id=12, full_name="Ada Lovelace", email="ada@example.edu")
    sheet.submissions.append(GradeEntry.from_submission(submission, user, assignment))
    return sheet


def test_entry_from_submission(sheet):
    entry = sheet.submissions[0]

    assert entry.late_seconds == 300
    assert entry.files == ["src/main.py"]
    assert entry.submitted_at == "2023-11-14T22:18:20+00:00"
    assert entry.grade is None
    assert not entry.is_graded


def test_written_sheet_can_be_read_back(sheet, tmp_path):
    path = write_grade_sheet(sheet, tmp_path / "out" / "grades.yaml")

    assert load_grade_sheet(path) == sheet
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert list(raw) == ["course_id", "assignment_id", "assignment", "max_grade", "submissions"]
    assert raw["submissions"][0]["grade"] is None


def test_hand_edited_sheet(tmp_path):
    path = tmp_path / "grades.yaml"
    path.write_text(
        "course_id: 7\n"
        "assignment_id: 3\n"
        "submissions:\n"
        "  - user_id: 12\n"
        "    grade: 95\n"
        "    feedback: |\n"
        "      Nice work.\n"
        "  - user_id: 13\n",
        encoding="utf-8",
    )

    sheet = load_grade_sheet(path)

    assert sheet.submissions[0].grade == 95.0
    assert sheet.submissions[0].feedback == "Nice work.\n"
    assert sheet.submissions[1].is_graded is False
    assert sheet.max_grade is None


@pytest.mark.parametrize(
    "data, message",
    [
        ([1, 2], "mapping at the top level"),
        ({"assignment_id": 3}, "missing 'course_id'"),
        ({"course_id": "seven", "assignment_id": 3}, "'course_id' must be an integer"),
        ({"course_id": 7, "assignment_id": 3, "submissions": {"user_id": 1}}, "must be a list"),
        ({"course_id": 7, "assignment_id": 3, "submissions": [{"grade": 5}]}, r"submissions\[0\]: missing 'user_id'"),
        ({"course_id": 7, "assignment_id": 3, "submissions": [{"user_id": 1, "grade": "A+"}]}, "must be a number"),
        ({"course_id": 7, "assignment_id": 3, "submissions": ["12"]}, "expected a mapping"),
    ],
)
def test_malformed_sheet(data, message):
    with pytest.raises(GradeSheetError, match=message):
        GradeSheet.from_dict(data)


def test_invalid_yaml(tmp_path):
    path = tmp_path / "grades.yaml"
    path.write_text("course_id: [7\n", encoding="utf-8")

    with pytest.raises(GradeSheetError, match="Invalid YAML"):
        load_grade_sheet(path)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_grade_sheet(tmp_path / "missing.yaml")
