from __future__ import annotations

import typing as t

import pydantic as p
import sqlalchemy as sqla

from markbook.core import di
from markbook.model import ComponentPeriod, GradingPeriod, PeriodID, PeriodShape, SemesterID, SummaryPeriod

from . import Session
from .table import grading_periods

ShapeAdapter: p.TypeAdapter[ComponentPeriod | SummaryPeriod] = p.TypeAdapter(PeriodShape)


def _to_model(row: t.Mapping[str, t.Any]) -> GradingPeriod:
    return GradingPeriod(
        period_id=row["period_id"],
        semester_id=row["semester_id"],
        name=row["name"],
        shape=ShapeAdapter.validate_python(row["shape"]),
        create_time=row["create_time"],
    )


def get(period_id: PeriodID, *, session: Session = di.Provide["storage.persistent.session"]) -> GradingPeriod | None:
    stmt = sqla.select(grading_periods.__table__).where(grading_periods.period_id == period_id)
    row = session.execute(stmt).mappings().one_or_none()
    return _to_model(row) if row else None


def find(
    *,
    semester_id: SemesterID | None = None,
    kind: t.Literal["component", "summary"] | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[GradingPeriod, ...]:
    stmt = sqla.select(grading_periods.__table__).order_by(grading_periods.create_time, grading_periods.name)
    if semester_id is not None:
        stmt = stmt.where(grading_periods.semester_id == semester_id)
    if kind is not None:
        stmt = stmt.where(grading_periods.kind == kind)
    rows = session.execute(stmt).mappings().all()
    return tuple(_to_model(row) for row in rows)


def find_summaries(
    source_period_id: PeriodID, *, session: Session = di.Provide["storage.persistent.session"]
) -> tuple[GradingPeriod, ...]:
    """Summary periods of the same semester that list `source_period_id` as a source"""
    source = get(source_period_id, session=session)
    if source is None:
        return ()
    candidates = find(semester_id=source.semester_id, kind="summary", session=session)
    return tuple(c for c in candidates if source_period_id in c.source_period_ids)


def create(
    *,
    semester_id: SemesterID,
    name: str,
    shape: ComponentPeriod | SummaryPeriod,
    session: Session = di.Provide["storage.persistent.session"],
) -> GradingPeriod:
    """Create a grading period.

    Raises:
        KeyError: if a summary period names a source that does not exist or
            belongs to another semester
    """
    if isinstance(shape, SummaryPeriod):
        for source_id in shape.source_period_ids:
            source = get(source_id, session=session)
            if source is None or source.semester_id != semester_id:
                raise KeyError(f"source period {source_id} not found in semester {semester_id}")

    period_id = PeriodID()
    stmt = sqla.insert(grading_periods).values(
        period_id=period_id,
        semester_id=semester_id,
        name=name,
        kind=shape.kind,
        shape=shape.model_dump(mode="json"),
    )
    session.execute(stmt)
    session.flush()
    result = get(period_id, session=session)
    assert result is not None
    return result
