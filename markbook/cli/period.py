"""CLI commands for managing grading periods."""

from __future__ import annotations

from sqlalchemy.orm import Session

import markbook.lib.cli as click
from markbook.core import di
from markbook.model import ComponentPeriod, GradeComponent, GradingPeriod, PeriodID, PeriodKind, SemesterID, \
    SummaryPeriod
from markbook.storage import period as period_storage


def _describe(period: GradingPeriod) -> str:
    if period.kind is PeriodKind.Summary:
        detail = "sources=" + ",".join(s.key for s in period.source_period_ids)
    else:
        required = ",".join(sorted(period.required, key=GradeComponent.sort_key)) or "-"
        detail = f"required={required} regular_count={period.regular_count or '-'}"
    return f"{period.period_id}  {period.kind.value:<9}  {period.name}  {detail}"


@click.group("period")
def period():
    """Manage grading periods."""
    ...


@period.command("create")
@click.argument("semester_id", type=click.KeyParamType(SemesterID))
@click.argument("name")
@click.option(
    "--required",
    "-r",
    multiple=True,
    type=click.Choice(["midterm", "final"]),
    help="protected cell every imported row must carry",
)
@click.option("--regular-count", "-n", type=click.IntRange(min=0), default=None, help="expected regular columns")
@click.option(
    "--source",
    "-s",
    "sources",
    multiple=True,
    type=click.KeyParamType(PeriodID),
    help="component period this summary period reconciles; makes a summary period",
)
@di.inject
def period_create(
    semester_id: SemesterID,
    name: str,
    required: tuple[str, ...],
    regular_count: int | None,
    sources: tuple[PeriodID, ...],
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Create a grading period.

    SEMESTER_ID groups periods; a summary period may only source periods of
    its own semester. Pass --source one or more times to create a summary
    period, otherwise a component period is created.
    """
    if sources and (required or regular_count is not None):
        raise click.UsageError("--source cannot be combined with --required or --regular-count")

    shape: ComponentPeriod | SummaryPeriod
    if sources:
        shape = SummaryPeriod(source_period_ids=sources)
    else:
        shape = ComponentPeriod(required=frozenset(GradeComponent(r) for r in required), regular_count=regular_count)

    with session.begin():
        try:
            created = period_storage.create(semester_id=semester_id, name=name, shape=shape, session=session)
        except KeyError as e:
            raise click.ClickException(str(e.args[0])) from e
    click.echo(_describe(created))


@period.command("list")
@click.option("--semester", "semester_id", type=click.KeyParamType(SemesterID), default=None)
@di.inject
def period_list(
    semester_id: SemesterID | None,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """List grading periods."""
    with session.begin():
        periods = period_storage.find(semester_id=semester_id, session=session)
    if not periods:
        click.echo("No grading periods found.")
        return
    for p in periods:
        click.echo(_describe(p))


@period.command("show")
@click.argument("period_id", type=click.KeyParamType(PeriodID))
@di.inject
def period_show(period_id: PeriodID, session: Session = di.Provide["storage.persistent.session"]) -> None:
    with session.begin():
        found = period_storage.get(period_id, session=session)
        summaries = period_storage.find_summaries(period_id, session=session) if found else ()
    if found is None:
        raise click.ClickException(f"period {period_id} not found")
    click.echo(_describe(found))
    for s in summaries:
        click.echo(f"  summarized by {s.period_id}  {s.name}")
