from __future__ import annotations

import decimal

from sqlalchemy.orm import Session

from markbook.model import ComponentCategory, GradeComponent, GradeRecord, ImportScope, StudentID, StudentOverview
from markbook.storage import grade as grade_storage
from markbook.storage import roster as roster_storage


def overview(scope: ImportScope, *, session: Session) -> tuple[StudentOverview, ...]:
    """Every roster student with their current grades, including students without any."""
    entries = roster_storage.find(class_id=scope.class_id, period_id=scope.period_id, session=session)
    records = grade_storage.find(
        period_id=scope.period_id, class_id=scope.class_id, subject_id=scope.subject_id, session=session
    )
    by_student: dict[StudentID, list[GradeRecord]] = {}
    for r in records:
        by_student.setdefault(r.student_id, []).append(r)

    return tuple(
        summarize(e.student_id, e.student_code, e.full_name, by_student.get(e.student_id, [])) for e in entries
    )


def summarize(student_id: StudentID, code: str, name: str, records: list[GradeRecord]) -> StudentOverview:
    values = {r.component: r.value for r in records}
    regular_count = max((c.index or 0 for c in values if c.category is ComponentCategory.Regular), default=0)
    regular: list[decimal.Decimal | None] = [values.get(GradeComponent.regular(i)) for i in range(1, regular_count + 1)]
    latest = max(records, key=lambda r: r.update_time, default=None)

    return StudentOverview(
        student_id=student_id,
        student_code=code,
        full_name=name,
        regular=regular,
        midterm=values.get(GradeComponent.Midterm),
        final=values.get(GradeComponent.Final),
        summary=values.get(GradeComponent.Summary),
        is_final=bool(records) and all(r.is_final for r in records),
        update_time=latest.update_time if latest else None,
        updated_by=(latest.updated_by or latest.created_by) if latest else None,
    )
