from __future__ import annotations

import decimal
import typing as t

import sqlalchemy as sqla

from markbook.core import di
from markbook.lib import NotSet
from markbook.model import ClassID, GradeComponent, GradeKey, GradeRecord, GradeRecordID, PeriodID, StudentID, \
    SubjectID, UserID

from . import Session
from .table import grade_records


def _where_key(stmt: t.Any, key: GradeKey) -> t.Any:
    return stmt.where(
        grade_records.period_id == key.period_id,
        grade_records.student_id == key.student_id,
        grade_records.subject_id == key.subject_id,
        grade_records.class_id == key.class_id,
        grade_records.component == key.component,
    )


def get(key: GradeKey, *, session: Session = di.Provide["storage.persistent.session"]) -> GradeRecord | None:
    """Get the committed record for one composite key."""
    stmt = _where_key(sqla.select(grade_records.__table__), key)
    row = session.execute(stmt).mappings().one_or_none()
    return GradeRecord(**row) if row else None


def find(
    *,
    period_id: PeriodID,
    class_id: ClassID | None = None,
    subject_id: SubjectID | None = None,
    student_id: StudentID | None = None,
    components: t.Collection[GradeComponent] | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[GradeRecord, ...]:
    stmt = sqla.select(grade_records.__table__).where(grade_records.period_id == period_id)
    if class_id is not None:
        stmt = stmt.where(grade_records.class_id == class_id)
    if subject_id is not None:
        stmt = stmt.where(grade_records.subject_id == subject_id)
    if student_id is not None:
        stmt = stmt.where(grade_records.student_id == student_id)
    if components is not None:
        stmt = stmt.where(grade_records.component.in_([str.__str__(c) for c in components]))
    rows = session.execute(stmt).mappings().all()
    return tuple(GradeRecord(**row) for row in rows)


def create(
    key: GradeKey,
    *,
    value: decimal.Decimal | None,
    created_by: UserID,
    session: Session = di.Provide["storage.persistent.session"],
) -> GradeRecord:
    """Insert the record for a key that has none yet.

    A concurrent insert of the same key surfaces as an IntegrityError from the
    unique composite constraint.
    """
    grade_id = GradeRecordID()
    stmt = sqla.insert(grade_records).values(
        grade_id=grade_id,
        period_id=key.period_id,
        student_id=key.student_id,
        subject_id=key.subject_id,
        class_id=key.class_id,
        component=key.component,
        value=value,
        created_by=created_by,
    )
    session.execute(stmt)
    session.flush()
    result = get(key, session=session)
    assert result is not None
    return result


def update(
    key: GradeKey,
    *,
    value: decimal.Decimal | None,
    updated_by: UserID,
    expected: decimal.Decimal | None | NotSet = NotSet(),
    session: Session = di.Provide["storage.persistent.session"],
) -> GradeRecord | None:
    """Set the value of an unlocked record.

    When `expected` is given the write only happens if the record still holds
    that value. Returns the updated record, or None when no row matched: the
    key is absent, the record is final, or `expected` no longer holds.
    """
    stmt = _where_key(sqla.update(grade_records), key).where(grade_records.is_final.is_(False))
    if not isinstance(expected, NotSet):
        if expected is None:
            stmt = stmt.where(grade_records.value.is_(None))
        else:
            stmt = stmt.where(grade_records.value == expected)
    stmt = stmt.values(value=value, updated_by=updated_by, update_time=sqla.func.now())

    result = session.execute(stmt)
    if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
        return None
    session.flush()
    return get(key, session=session)


def lock(
    *,
    period_id: PeriodID,
    class_id: ClassID,
    subject_id: SubjectID,
    session: Session = di.Provide["storage.persistent.session"],
) -> int:
    """Mark every record of a (period, class, subject) final; returns the number newly locked."""
    stmt = (
        sqla
        .update(grade_records)
        .where(
            grade_records.period_id == period_id,
            grade_records.class_id == class_id,
            grade_records.subject_id == subject_id,
            grade_records.is_final.is_(False),
        )
        .values(is_final=True, update_time=sqla.func.now())
    )
    result = session.execute(stmt)
    session.flush()
    return int(result.rowcount)  # pyright: ignore[reportAttributeAccessIssue]
