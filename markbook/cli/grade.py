"""CLI commands for grade sheets: templates, imports, overview and locking."""

from __future__ import annotations

import typing as t

from sqlalchemy.orm import Session

import markbook.lib.cli as click
import markbook.lib.sheets as sheets
from markbook.core import di
from markbook.grading import ImportPipeline
from markbook.grading.overview import overview
from markbook.model import ClassID, ImportRow, ImportScope, Issue, PeriodID, Severity, StudentCommitStatus, \
    SubjectID, UserID, ValidationResult
from markbook.storage import grade as grade_storage
from markbook.storage import period as period_storage
from markbook.storage import roster as roster_storage


def scope_arguments(fn: t.Callable[..., t.Any]) -> t.Callable[..., t.Any]:
    fn = click.argument("subject_id", type=click.KeyParamType(SubjectID))(fn)
    fn = click.argument("class_id", type=click.KeyParamType(ClassID))(fn)
    fn = click.argument("period_id", type=click.KeyParamType(PeriodID))(fn)
    return fn


def _read_sheet(sheet: t.TextIO, delimiter: str) -> list[ImportRow]:
    try:
        return sheets.read_rows(sheet, delimiter=delimiter)
    except ValueError as e:
        raise click.ClickException(str(e)) from e


def _echo_issue(issue: Issue) -> None:
    color = "red" if issue.severity is Severity.Error else "yellow"
    where = f"row {issue.row_number}" if issue.row_number is not None else "batch"
    who = f" [{issue.student_code}]" if issue.student_code else ""
    click.echo(click.style(f"{issue.severity.value.upper():<7}", fg=color), nl=False, err=True)
    click.echo(f" {where}{who} {issue.field}: {issue.message}", err=True)


def _echo_validation(result: ValidationResult) -> None:
    for issue in (*result.errors, *result.warnings):
        _echo_issue(issue)
    s = result.statistics
    click.echo(
        f"rows: {s.total_rows} total, {s.valid_rows} valid, {s.invalid_rows} invalid, {s.empty_rows} empty; "
        f"grades: {s.valid_grades} valid, {s.invalid_grades} invalid, {s.missing_grades} missing"
    )


@click.group("grade")
def grade():
    """Import, inspect and lock grades."""
    ...


@grade.command("template")
@scope_arguments
@click.option("--output", "-O", type=click.File("w"), default="-")
@click.option("--regular-count", "-n", type=click.IntRange(min=0), default=None)
@di.inject
def grade_template(
    period_id: PeriodID,
    class_id: ClassID,
    subject_id: SubjectID,
    output: t.TextIO,
    regular_count: int | None,
    session: Session = di.Provide["storage.persistent.session"],
    max_regular_count: int = di.Provide["config.grading.max_regular_count"],
) -> None:
    """Write an empty grade sheet with one row per enrolled student.

    The number of regular columns defaults to the period's expected count.
    """
    with session.begin():
        found = period_storage.get(period_id, session=session)
        if found is None:
            raise click.ClickException(f"period {period_id} not found")
        entries = roster_storage.find(class_id=class_id, period_id=period_id, session=session)
    count = regular_count if regular_count is not None else (found.regular_count or 0)
    if count > max_regular_count:
        raise click.ClickException(f"at most {max_regular_count} regular columns are accepted")
    n = sheets.write_template(output, entries, count)
    click.echo(f"Wrote {n} students.", err=True)


@grade.command("validate")
@scope_arguments
@click.argument("sheet", type=click.File("r"))
@click.option("--delimiter", "-d", default=",")
@di.inject
def grade_validate(
    period_id: PeriodID,
    class_id: ClassID,
    subject_id: SubjectID,
    sheet: t.TextIO,
    delimiter: str,
    pipeline: ImportPipeline = di.Provide["grading.pipeline"],
    session: Session = di.Provide["storage.persistent.session"],
) -> int:
    """Check a grade sheet without writing anything; exits 1 on errors."""
    rows = _read_sheet(sheet, delimiter)
    scope = ImportScope(period_id=period_id, class_id=class_id, subject_id=subject_id)
    with session.begin():
        result = pipeline.validate(rows, scope, session=session)
    _echo_validation(result)
    return 0 if result.success else 1


@grade.command("import")
@scope_arguments
@click.argument("sheet", type=click.File("r"))
@click.option("--delimiter", "-d", default=",")
@click.option("--actor", "-a", type=click.KeyParamType(UserID), envvar="MARKBOOK_ACTOR", required=True)
@di.inject
def grade_import(
    period_id: PeriodID,
    class_id: ClassID,
    subject_id: SubjectID,
    sheet: t.TextIO,
    delimiter: str,
    actor: UserID,
    pipeline: ImportPipeline = di.Provide["grading.pipeline"],
    session: Session = di.Provide["storage.persistent.session"],
) -> int:
    """Import a grade sheet.

    Nothing is written unless the whole sheet validates. Changes to midterm
    or final values already on record are filed as override proposals.
    """
    rows = _read_sheet(sheet, delimiter)
    scope = ImportScope(period_id=period_id, class_id=class_id, subject_id=subject_id)
    outcome = pipeline.run(rows, scope, actor=actor, session=session)

    _echo_validation(outcome.validation)
    if outcome.commit is None:
        click.echo(click.style("Import rejected, nothing was written.", fg="red"), err=True)
        return 1

    for o in outcome.commit.ledger:
        if o.status is StudentCommitStatus.Failed:
            click.echo(click.style(f"FAILED  row {o.row_number} [{o.student_code}]: {o.error}", fg="red"), err=True)
        elif o.status is StudentCommitStatus.Proposed:
            click.echo(f"PROPOSED row {o.row_number} [{o.student_code}]: " + ", ".join(o.proposal_ids))
    click.echo(
        f"Imported {outcome.commit.imported_count} students, {outcome.commit.error_count} failed, "
        f"{len(outcome.commit.proposal_ids)} override proposals pending."
    )
    return 0 if outcome.commit.success else 1


@grade.command("overview")
@scope_arguments
@di.inject
def grade_overview(
    period_id: PeriodID,
    class_id: ClassID,
    subject_id: SubjectID,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Print every enrolled student with their current grades."""
    with session.begin():
        students = overview(ImportScope(period_id=period_id, class_id=class_id, subject_id=subject_id), session=session)

    def cell(v: t.Any) -> str:
        return "-" if v is None else str(v)

    for s in students:
        regular = " ".join(cell(v) for v in s.regular) or "-"
        lock = " (final)" if s.is_final else ""
        click.echo(
            f"{s.student_code:<20} {s.full_name:<30} regular: {regular}  midterm: {cell(s.midterm)}  "
            f"final: {cell(s.final)}  summary: {cell(s.summary)}{lock}"
        )


@grade.command("lock")
@scope_arguments
@click.confirmation_option(prompt="Locked grades cannot be changed by imports or overrides. Continue?")
@di.inject
def grade_lock(
    period_id: PeriodID,
    class_id: ClassID,
    subject_id: SubjectID,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Mark every grade of a period, class and subject final."""
    with session.begin():
        n = grade_storage.lock(period_id=period_id, class_id=class_id, subject_id=subject_id, session=session)
    click.echo(f"Locked {n} grades.")
