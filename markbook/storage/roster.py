from __future__ import annotations

import sqlalchemy as sqla

from markbook.core import di
from markbook.model import ClassID, PeriodID, RosterEntry, StudentID

from . import Session
from .table import roster_entries


def get(
    *,
    class_id: ClassID,
    period_id: PeriodID,
    student_id: StudentID | None = None,
    student_code: str | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> RosterEntry | None:
    if (student_id is None) == (student_code is None):
        raise ValueError("exactly one of student_id or student_code is required")
    stmt = sqla.select(roster_entries.__table__).where(
        roster_entries.class_id == class_id, roster_entries.period_id == period_id
    )
    if student_id is not None:
        stmt = stmt.where(roster_entries.student_id == student_id)
    if student_code is not None:
        stmt = stmt.where(roster_entries.student_code == student_code)
    row = session.execute(stmt).mappings().one_or_none()
    return RosterEntry(**row) if row else None


def find(
    *,
    class_id: ClassID,
    period_id: PeriodID,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[RosterEntry, ...]:
    stmt = (
        sqla
        .select(roster_entries.__table__)
        .where(roster_entries.class_id == class_id, roster_entries.period_id == period_id)
        .order_by(roster_entries.student_code)
    )
    rows = session.execute(stmt).mappings().all()
    return tuple(RosterEntry(**row) for row in rows)


def create(
    *,
    class_id: ClassID,
    period_id: PeriodID,
    student_code: str,
    full_name: str,
    student_id: StudentID | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> RosterEntry:
    """Enroll a student in a class for one grading period.

    A new StudentID is minted when none is given.
    """
    student_id = student_id or StudentID()
    stmt = sqla.insert(roster_entries).values(
        class_id=class_id,
        period_id=period_id,
        student_id=student_id,
        student_code=student_code.strip(),
        full_name=full_name,
    )
    session.execute(stmt)
    session.flush()
    result = get(class_id=class_id, period_id=period_id, student_id=student_id, session=session)
    assert result is not None
    return result
