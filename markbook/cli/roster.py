"""CLI commands for managing class rosters."""

from __future__ import annotations

import typing as t

import sqlalchemy.exc
from sqlalchemy.orm import Session

import markbook.lib.cli as click
import markbook.lib.sheets as sheets
from markbook.core import di
from markbook.model import ClassID, PeriodID, StudentID
from markbook.storage import roster as roster_storage


@click.group("roster")
def roster():
    """Manage class rosters."""
    ...


@roster.command("add")
@click.argument("class_id", type=click.KeyParamType(ClassID))
@click.argument("period_id", type=click.KeyParamType(PeriodID))
@click.argument("student_code")
@click.argument("full_name")
@click.option("--student", "student_id", type=click.KeyParamType(StudentID), default=None)
@di.inject
def roster_add(
    class_id: ClassID,
    period_id: PeriodID,
    student_code: str,
    full_name: str,
    student_id: StudentID | None,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Enroll a student in a class for a grading period.

    Pass --student to enroll an existing student; a new student identifier is
    minted otherwise.
    """
    try:
        with session.begin():
            entry = roster_storage.create(
                class_id=class_id,
                period_id=period_id,
                student_code=student_code,
                full_name=full_name,
                student_id=student_id,
                session=session,
            )
    except sqlalchemy.exc.IntegrityError as e:
        raise click.ClickException(f"student code {student_code!r} or student is already enrolled") from e
    click.echo(f"{entry.student_id}  {entry.student_code}  {entry.full_name}")


@roster.command("import")
@click.argument("class_id", type=click.KeyParamType(ClassID))
@click.argument("period_id", type=click.KeyParamType(PeriodID))
@click.argument("roster_file", type=click.File("r"))
@di.inject
def roster_import(
    class_id: ClassID,
    period_id: PeriodID,
    roster_file: t.TextIO,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Enroll every student of a two column CSV sheet (code, name)."""
    try:
        pairs = sheets.read_roster(roster_file)
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    try:
        with session.begin():
            for code, name in pairs:
                roster_storage.create(
                    class_id=class_id, period_id=period_id, student_code=code, full_name=name, session=session
                )
    except sqlalchemy.exc.IntegrityError as e:
        raise click.ClickException("a student code in the sheet is already enrolled; nothing was imported") from e
    click.echo(f"Enrolled {len(pairs)} students.")


@roster.command("list")
@click.argument("class_id", type=click.KeyParamType(ClassID))
@click.argument("period_id", type=click.KeyParamType(PeriodID))
@di.inject
def roster_list(
    class_id: ClassID,
    period_id: PeriodID,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    with session.begin():
        entries = roster_storage.find(class_id=class_id, period_id=period_id, session=session)
    if not entries:
        click.echo("No students enrolled.")
        return
    for e in entries:
        click.echo(f"{e.student_id}  {e.student_code:<20}  {e.full_name}")
