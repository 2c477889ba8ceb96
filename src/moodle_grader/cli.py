"""Console script for moodle_grader."""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import ENV_BASE_URL, ENV_PASSWORD, ENV_USERNAME, ConfigError, MoodleSettings, resolve_settings
from .grading import GradeEntry, GradeSheet, GradeSheetError, load_grade_sheet, write_grade_sheet
from .moodle import Course, MoodleAPI, MoodleAPIError, Session, format_duration
from .utils import ensure_dir, get_logger, resolve_inside, setup_logging, submission_dir

logger = get_logger(__name__)

app = typer.Typer(
    no_args_is_help=True,
    help="List Moodle assignments, download submissions and upload grades.",
)
console = Console()


def _version_callback(value: bool) -> None:
    if not value:
        return
    typer.echo(f"moodle-grader {__version__}")
    raise typer.Exit()


@contextmanager
def _error_boundary() -> Iterator[None]:
    try:
        yield
    except (MoodleAPIError, GradeSheetError, ConfigError, OSError) as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


@app.callback()
def _app_callback(
    ctx: typer.Context,
    base_url: str | None = typer.Option(
        None, "--base-url", "-b", envvar=ENV_BASE_URL, help="Moodle site URL."
    ),
    username: str | None = typer.Option(
        None, "--username", "-u", envvar=ENV_USERNAME, help="Moodle username."
    ),
    password: str | None = typer.Option(
        None, "--password", "-p", envvar=ENV_PASSWORD, help="Moodle password.", show_default=False
    ),
    config: Path | None = typer.Option(
        None, "--config", help="YAML file with a 'moodle' section of connection settings."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Set logging level to debug."),
    version: bool = typer.Option(
        False,
        "--version",
        is_eager=True,
        callback=_version_callback,
        help="Show version and exit.",
    ),
) -> None:
    del version
    setup_logging(level=logging.DEBUG if verbose else logging.INFO)
    with _error_boundary():
        ctx.obj = resolve_settings(
            MoodleSettings(base_url=base_url, username=username, password=password),
            config,
        )


@contextmanager
def _connect(ctx: typer.Context) -> Iterator[tuple[MoodleAPI, Session]]:
    """Log in with the resolved settings and yield the client and session."""
    settings: MoodleSettings = ctx.obj
    if settings.missing:
        raise typer.BadParameter(
            f"missing {', '.join(settings.missing)} "
            f"(pass a flag, set {ENV_BASE_URL}/{ENV_USERNAME}/{ENV_PASSWORD} or use --config)",
            param_hint="connection settings",
        )

    with MoodleAPI() as api:
        session = api.authenticate(settings.base_url, settings.username, settings.password)
        yield api, session


def _assignments_table(course: Course) -> Table:
    table = Table(title=course.title, title_justify="left")
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Max Grade", justify="right")
    table.add_column("Due Date & Time")
    for assignment in course.assignments:
        table.add_row(
            str(assignment.id),
            assignment.name,
            f"{assignment.max_grade:g}",
            assignment.due_date_display,
        )
    return table


@app.command("list-assignments")
def list_assignments(
    ctx: typer.Context,
    course_id: int = typer.Option(..., "--course-id", "-c", help="Moodle course ID."),
) -> None:
    """List the assignments of a course."""
    with _error_boundary(), _connect(ctx) as (api, session):
        course = api.get_course_assignments(session, course_id)

    if not course.assignments:
        console.print(course.title)
        console.print("No assignments found!")
        return
    console.print(_assignments_table(course))


@app.command("download-submissions")
def download_submissions(
    ctx: typer.Context,
    course_id: int = typer.Option(..., "--course-id", "-c", help="Moodle course ID."),
    assignment_id: int = typer.Option(..., "--assignment-id", "-a", help="Moodle assignment ID."),
    output_file: Path | None = typer.Option(
        None, "--output-file", "-o", help="Write a grade sheet (YAML) describing the submissions."
    ),
    directory: Path = typer.Option(
        Path("submissions"), "--directory", "-d", help="Where to store downloaded files."
    ),
) -> None:
    """Download every submitted file of an assignment."""
    table = Table(title="Submissions", title_justify="left")
    table.add_column("User")
    table.add_column("Email")
    table.add_column("Files", justify="right")
    table.add_column("Late")

    with _error_boundary(), _connect(ctx) as (api, session):
        course = api.get_course_assignments(session, course_id)
        assignment = course.get_assignment(assignment_id)
        submissions = api.get_submissions(session, assignment.id)
        sheet = GradeSheet.for_assignment(course, assignment)

        for submission in submissions:
            user = api.get_user(session, submission.user_id)
            user_dir = directory / submission_dir(user.full_name, user.id)

            for file in submission.files:
                try:
                    target = resolve_inside(user_dir, file.full_path)
                except ValueError as e:
                    raise MoodleAPIError(f"Refusing to write {file.full_path}: {e}") from e
                ensure_dir(target.parent)
                api.download_file(session, file, target)

            entry = GradeEntry.from_submission(submission, user, assignment)
            sheet.submissions.append(entry)
            table.add_row(
                user.full_name,
                user.email,
                str(len(submission.files)),
                format_duration(entry.late_seconds),
            )

        if output_file is not None:
            write_grade_sheet(sheet, output_file)

    console.print(table)
    console.print(f"Saved files for {len(sheet.submissions)} submission(s) under {directory}")


@app.command("upload-grades")
def upload_grades(
    ctx: typer.Context,
    file: Path = typer.Option(..., "--file", "-f", help="Grade sheet written by download-submissions."),
) -> None:
    """Upload the grades and feedback from a grade sheet."""
    uploaded = 0
    with _error_boundary():
        sheet = load_grade_sheet(file)

        with _connect(ctx) as (api, session):
            course = api.get_course_assignments(session, sheet.course_id)
            assignment = course.get_assignment(sheet.assignment_id)

            for entry in sheet.submissions:
                if not entry.is_graded:
                    logger.info(f"No grade for user {entry.user_id}, skipping")
                    continue
                user = api.get_user(session, entry.user_id)
                api.upload_grade(session, assignment, user, entry.grade, entry.feedback)
                uploaded += 1

    console.print(f"Uploaded {uploaded} grade(s) for {assignment.name}")


def main() -> None:
    load_dotenv()
    app()


if __name__ == "__main__":
    main()
