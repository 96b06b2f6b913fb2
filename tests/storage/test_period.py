"""Tests for markbook.storage.period module."""

from __future__ import annotations

import typing as t

import pytest
from sqlalchemy.orm import Session

from markbook.model import ComponentPeriod, GradeComponent, GradingPeriod, PeriodID, PeriodKind, SemesterID, \
    SummaryPeriod
from markbook.storage import period as period_storage


class TestCreate(object):
    """Tests for period_storage.create()."""

    def test_component_period_round_trips_its_shape(self, db_session: Session, semester_id: SemesterID) -> None:
        with db_session.begin():
            created = period_storage.create(
                semester_id=semester_id,
                name="Quarter 1",
                shape=ComponentPeriod(required=frozenset({GradeComponent.Midterm}), regular_count=4),
                session=db_session,
            )
            fetched = period_storage.get(created.period_id, session=db_session)

        assert fetched is not None
        assert fetched.kind is PeriodKind.Component
        assert fetched.required == {GradeComponent.Midterm}
        assert fetched.regular_count == 4
        assert fetched.source_period_ids == ()

    def test_summary_source_must_exist_in_semester(
        self,
        db_session: Session,
        period_factory: t.Callable[..., GradingPeriod],
    ) -> None:
        other = period_factory(name="Elsewhere", semester=SemesterID())

        with pytest.raises(KeyError):
            with db_session.begin():
                period_storage.create(
                    semester_id=SemesterID(),
                    name="Semester",
                    shape=SummaryPeriod(source_period_ids=(other.period_id,)),
                    session=db_session,
                )

    def test_summary_shape_rejects_repeated_sources(self) -> None:
        period_id = PeriodID()

        with pytest.raises(ValueError):
            SummaryPeriod(source_period_ids=(period_id, period_id))

    def test_summary_cannot_be_required(self) -> None:
        with pytest.raises(ValueError):
            ComponentPeriod(required=frozenset({GradeComponent.Summary}))


class TestFind(object):
    """Tests for period_storage.find() and find_summaries()."""

    def test_find_by_semester_and_kind(
        self,
        db_session: Session,
        semester_id: SemesterID,
        period_factory: t.Callable[..., GradingPeriod],
    ) -> None:
        q1 = period_factory(name="Q1")
        q2 = period_factory(name="Q2")
        semester = period_factory(name="S1", sources=[q1.period_id, q2.period_id])
        period_factory(name="Other", semester=SemesterID())

        with db_session.begin():
            everything = period_storage.find(semester_id=semester_id, session=db_session)
            summaries = period_storage.find(semester_id=semester_id, kind="summary", session=db_session)

        assert {p.period_id for p in everything} == {q1.period_id, q2.period_id, semester.period_id}
        assert [p.period_id for p in summaries] == [semester.period_id]
        assert summaries[0].source_period_ids == (q1.period_id, q2.period_id)

    def test_find_summaries(
        self,
        db_session: Session,
        period_factory: t.Callable[..., GradingPeriod],
    ) -> None:
        q1 = period_factory(name="Q1")
        q2 = period_factory(name="Q2")
        semester = period_factory(name="S1", sources=[q1.period_id])

        with db_session.begin():
            of_q1 = period_storage.find_summaries(q1.period_id, session=db_session)
            of_q2 = period_storage.find_summaries(q2.period_id, session=db_session)

        assert [p.period_id for p in of_q1] == [semester.period_id]
        assert of_q2 == ()
