"""Tests for markbook.grading.aggregator module."""

from __future__ import annotations

import decimal
import typing as t

import pytest
from sqlalchemy.orm import Session

from markbook.core.config.grading import GradingSettings
from markbook.grading import AggregationPrecondition, GradeAggregator
from markbook.model import GradeComponent, GradeKey, GradeRecord, GradingPeriod, ImportScope, RosterEntry, UserID
from markbook.storage import grade as grade_storage

D = decimal.Decimal
Midterm, Final, Summary = GradeComponent.Midterm, GradeComponent.Final, GradeComponent.Summary


def values(regular: t.Sequence[str], midterm: str | None, final: str | None) -> dict[GradeComponent, D | None]:
    v: dict[GradeComponent, D | None] = {GradeComponent.regular(i): D(r) for i, r in enumerate(regular, start=1)}
    v[Midterm] = None if midterm is None else D(midterm)
    v[Final] = None if final is None else D(final)
    return v


class TestCompute(object):
    """Tests for GradeAggregator.compute()."""

    def test_weighted_mean_rounds_half_up(self) -> None:
        """(8 + 7 + 9 + 2*8 + 3*9) / 8 = 8.375, stored with one decimal."""
        aggregator = GradeAggregator(GradingSettings())

        assert aggregator.compute(values(["8", "7", "9"], "8", "9")) == D("8.4")

    def test_precision_is_configurable(self) -> None:
        aggregator = GradeAggregator(GradingSettings(summary_precision=2))

        assert aggregator.compute(values(["8", "7", "9"], "8", "9")) == D("8.38")

    def test_half_up_not_half_even(self) -> None:
        """(6 + 2*6 + 3*7) / 6 = 6.5 exactly, which rounds up."""
        aggregator = GradeAggregator(GradingSettings(summary_precision=0))

        assert aggregator.compute(values(["6"], "6", "7")) == D("7")

    def test_empty_regular_cells_do_not_count(self) -> None:
        aggregator = GradeAggregator()
        v = values(["8"], "8", "8")
        v[GradeComponent.regular(2)] = None

        assert aggregator.compute(v) == D("8.0")

    @pytest.mark.parametrize(
        "regular,midterm,final,missing",
        [
            ([], "8", "9", 1),
            (["8"], None, "9", 1),
            (["8"], "8", None, 1),
            ([], None, None, 3),
        ],
    )
    def test_preconditions(self, regular: list[str], midterm: str | None, final: str | None, missing: int) -> None:
        with pytest.raises(AggregationPrecondition) as exc_info:
            GradeAggregator().compute(values(regular, midterm, final))

        assert len(exc_info.value.missing) == missing


class TestReconcile(object):
    """Tests for GradeAggregator.reconcile()."""

    def test_every_regular_grade_counts(self) -> None:
        merged = GradeAggregator.reconcile([
            {GradeComponent.regular(1): D("8"), GradeComponent.regular(2): D("7"), Midterm: D("8")},
            {GradeComponent.regular(1): D("9"), Final: D("9")},
        ])

        assert sorted(v for c, v in merged.items() if c.index is not None) == [D("7"), D("8"), D("9")]
        assert len(merged) == 5

    def test_exams_take_first_non_null_value(self) -> None:
        merged = GradeAggregator.reconcile([
            {Midterm: None, Summary: D("5"), GradeComponent.regular(1): D("6")},
            {Midterm: D("7"), GradeComponent.regular(2): None},
            {Midterm: D("3"), Final: D("8")},
        ])

        assert merged == {GradeComponent.regular(1): D("6"), Midterm: D("7"), Final: D("8")}

    def test_regular_grades_are_renumbered_in_period_order(self) -> None:
        merged = GradeAggregator.reconcile([
            {GradeComponent.regular(2): D("5"), GradeComponent.regular(1): D("4")},
            {GradeComponent.regular(1): D("6")},
        ])

        assert merged == {
            GradeComponent.regular(1): D("4"),
            GradeComponent.regular(2): D("5"),
            GradeComponent.regular(3): D("6"),
        }


class TestRecompute(object):
    """Tests for GradeAggregator.recompute()."""

    def test_stores_summary(
        self,
        db_session: Session,
        scope: ImportScope,
        roster: dict[str, RosterEntry],
        grade_factory: t.Callable[..., GradeRecord],
        key_for: t.Callable[[RosterEntry, str], GradeKey],
        actor: UserID,
    ) -> None:
        student = roster["S001"]
        cells = (("regular_1", "8"), ("regular_2", "7"), ("regular_3", "9"), ("midterm", "8"), ("final", "9"))
        for component, value in cells:
            grade_factory(key_for(student, component), value)

        with db_session.begin():
            summary = GradeAggregator().recompute(
                scope.period_id,
                student_id=student.student_id,
                subject_id=scope.subject_id,
                class_id=scope.class_id,
                actor=actor,
                session=db_session,
            )
            stored = grade_storage.get(key_for(student, "summary"), session=db_session)

        assert summary == D("8.4")
        assert stored is not None
        assert stored.value == D("8.4")

    def test_clears_summary_when_inputs_are_incomplete(
        self,
        db_session: Session,
        scope: ImportScope,
        roster: dict[str, RosterEntry],
        grade_factory: t.Callable[..., GradeRecord],
        key_for: t.Callable[[RosterEntry, str], GradeKey],
        actor: UserID,
    ) -> None:
        student = roster["S001"]
        grade_factory(key_for(student, "regular_1"), "8")
        grade_factory(key_for(student, "summary"), "7.5")

        with db_session.begin():
            summary = GradeAggregator().recompute(
                scope.period_id,
                student_id=student.student_id,
                subject_id=scope.subject_id,
                class_id=scope.class_id,
                actor=actor,
                session=db_session,
            )
            stored = grade_storage.get(key_for(student, "summary"), session=db_session)

        assert summary is None
        assert stored is not None
        assert stored.value is None

    def test_cascades_to_summary_period(
        self,
        db_session: Session,
        scope: ImportScope,
        test_period: GradingPeriod,
        period_factory: t.Callable[..., GradingPeriod],
        roster: dict[str, RosterEntry],
        grade_factory: t.Callable[..., GradeRecord],
        actor: UserID,
    ) -> None:
        """A semester summary reconciles the regular grades of Q1 with the exams of Q2."""
        q2 = period_factory(name="Quarter 2")
        semester = period_factory(name="Semester", sources=[test_period.period_id, q2.period_id])
        student = roster["S001"]

        def key(period: GradingPeriod, component: str) -> GradeKey:
            return GradeKey(
                period.period_id, student.student_id, scope.subject_id, scope.class_id, GradeComponent(component)
            )

        grade_factory(key(test_period, "regular_1"), "6")
        grade_factory(key(q2, "midterm"), "7")
        grade_factory(key(q2, "final"), "8")

        with db_session.begin():
            GradeAggregator().recompute(
                q2.period_id,
                student_id=student.student_id,
                subject_id=scope.subject_id,
                class_id=scope.class_id,
                actor=actor,
                session=db_session,
            )
            q2_summary = grade_storage.get(key(q2, "summary"), session=db_session)
            semester_summary = grade_storage.get(key(semester, "summary"), session=db_session)

        # Q2 alone has no regular grade
        assert q2_summary is None
        assert semester_summary is not None
        # (6 + 2*7 + 3*8) / 6 = 7.33
        assert semester_summary.value == D("7.3")

    def test_locked_summary_is_left_alone(
        self,
        db_session: Session,
        scope: ImportScope,
        roster: dict[str, RosterEntry],
        grade_factory: t.Callable[..., GradeRecord],
        key_for: t.Callable[[RosterEntry, str], GradeKey],
        actor: UserID,
    ) -> None:
        student = roster["S001"]
        grade_factory(key_for(student, "regular_1"), "8")
        grade_factory(key_for(student, "midterm"), "8")
        grade_factory(key_for(student, "final"), "8")
        grade_factory(key_for(student, "summary"), "5", is_final=True)

        with db_session.begin():
            GradeAggregator().recompute(
                scope.period_id,
                student_id=student.student_id,
                subject_id=scope.subject_id,
                class_id=scope.class_id,
                actor=actor,
                session=db_session,
            )
            stored = grade_storage.get(key_for(student, "summary"), session=db_session)

        assert stored is not None
        assert stored.value == D("5")

    def test_summary_period_counts_regular_grades_of_every_source(
        self,
        db_session: Session,
        scope: ImportScope,
        test_period: GradingPeriod,
        period_factory: t.Callable[..., GradingPeriod],
        roster: dict[str, RosterEntry],
        grade_factory: t.Callable[..., GradeRecord],
        actor: UserID,
    ) -> None:
        """Both source periods hold regular_1; (8 + 7 + 9 + 2*8 + 3*9) / 8 = 8.375."""
        end = period_factory(name="End of term")
        semester = period_factory(name="Semester", sources=[test_period.period_id, end.period_id])
        student = roster["S001"]

        def key(period: GradingPeriod, component: str) -> GradeKey:
            return GradeKey(
                period.period_id, student.student_id, scope.subject_id, scope.class_id, GradeComponent(component)
            )

        grade_factory(key(test_period, "regular_1"), "8")
        grade_factory(key(test_period, "regular_2"), "7")
        grade_factory(key(test_period, "midterm"), "8")
        grade_factory(key(end, "regular_1"), "9")
        grade_factory(key(end, "final"), "9")
        # records of the summary period itself are not an input
        grade_factory(key(semester, "regular_1"), "1")

        with db_session.begin():
            summary = GradeAggregator().recompute(
                semester.period_id,
                student_id=student.student_id,
                subject_id=scope.subject_id,
                class_id=scope.class_id,
                actor=actor,
                session=db_session,
            )
            stored = grade_storage.get(key(semester, "summary"), session=db_session)

        assert summary == D("8.4")
        assert stored is not None
        assert stored.value == D("8.4")
