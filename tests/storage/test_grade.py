"""Tests for markbook.storage.grade module."""

from __future__ import annotations

import decimal
import typing as t

import pytest
import sqlalchemy.exc
from sqlalchemy.orm import Session

from markbook.model import GradeComponent, GradeKey, GradeRecord, RosterEntry, UserID
from markbook.storage import grade as grade_storage

D = decimal.Decimal


class TestCreate(object):
    """Tests for grade_storage.create()."""

    def test_create_and_get(
        self,
        db_session: Session,
        roster: dict[str, RosterEntry],
        key_for: t.Callable[[RosterEntry, str], GradeKey],
        actor: UserID,
    ) -> None:
        key = key_for(roster["S001"], "regular_2")

        with db_session.begin():
            created = grade_storage.create(key, value=D("7.5"), created_by=actor, session=db_session)

        assert created.key == key
        assert created.component == GradeComponent.regular(2)
        assert created.value == D("7.5")
        assert created.created_by == actor
        assert created.updated_by is None
        assert not created.is_final

    def test_composite_key_is_unique(
        self,
        db_session: Session,
        roster: dict[str, RosterEntry],
        grade_factory: t.Callable[..., GradeRecord],
        key_for: t.Callable[[RosterEntry, str], GradeKey],
        actor: UserID,
    ) -> None:
        key = key_for(roster["S001"], "midterm")
        grade_factory(key, "7")

        with pytest.raises(sqlalchemy.exc.IntegrityError):
            with db_session.begin():
                grade_storage.create(key, value=D("8"), created_by=actor, session=db_session)


class TestUpdate(object):
    """Tests for grade_storage.update()."""

    def test_conditional_update(
        self,
        db_session: Session,
        roster: dict[str, RosterEntry],
        grade_factory: t.Callable[..., GradeRecord],
        key_for: t.Callable[[RosterEntry, str], GradeKey],
        actor: UserID,
    ) -> None:
        """The write only lands while the record still holds the expected value."""
        key = key_for(roster["S001"], "regular_1")
        grade_factory(key, "7")

        with db_session.begin():
            stale = grade_storage.update(key, value=D("9"), updated_by=actor, expected=D("6"), session=db_session)
            fresh = grade_storage.update(key, value=D("9"), updated_by=actor, expected=D("7"), session=db_session)

        assert stale is None
        assert fresh is not None
        assert fresh.value == D("9")
        assert fresh.updated_by == actor

    def test_final_records_are_not_updated(
        self,
        db_session: Session,
        roster: dict[str, RosterEntry],
        grade_factory: t.Callable[..., GradeRecord],
        key_for: t.Callable[[RosterEntry, str], GradeKey],
        actor: UserID,
    ) -> None:
        key = key_for(roster["S001"], "final")
        grade_factory(key, "6", is_final=True)

        with db_session.begin():
            result = grade_storage.update(key, value=D("9"), updated_by=actor, session=db_session)
            record = grade_storage.get(key, session=db_session)

        assert result is None
        assert record is not None and record.value == D("6")


class TestFindAndLock(object):
    """Tests for grade_storage.find() and lock()."""

    def test_lock_scope(
        self,
        db_session: Session,
        roster: dict[str, RosterEntry],
        grade_factory: t.Callable[..., GradeRecord],
        key_for: t.Callable[[RosterEntry, str], GradeKey],
    ) -> None:
        for code in ("S001", "S002"):
            grade_factory(key_for(roster[code], "regular_1"), "8")
            grade_factory(key_for(roster[code], "midterm"), "7")
        first = grade_factory(key_for(roster["S001"], "final"), "9")

        with db_session.begin():
            locked = grade_storage.lock(
                period_id=first.period_id, class_id=first.class_id, subject_id=first.subject_id, session=db_session
            )
            again = grade_storage.lock(
                period_id=first.period_id, class_id=first.class_id, subject_id=first.subject_id, session=db_session
            )
            records = grade_storage.find(
                period_id=first.period_id, class_id=first.class_id, subject_id=first.subject_id, session=db_session
            )
            exams = grade_storage.find(
                period_id=first.period_id,
                student_id=first.student_id,
                components=[GradeComponent.Midterm, GradeComponent.Final],
                session=db_session,
            )

        assert locked == 5
        assert again == 0
        assert len(records) == 5
        assert all(r.is_final for r in records)
        assert {r.component for r in exams} == {GradeComponent.Midterm, GradeComponent.Final}
