"""Grade overview API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from markbook.core import di
from markbook.grading import NotFoundError
from markbook.grading.overview import overview
from markbook.model import ClassID, ImportScope, PeriodID, SubjectID
from markbook.storage import period as period_storage

from ..view import OverviewResponse

router = APIRouter(prefix="/api/grades", tags=["grades"])


@router.get("/overview", operation_id="grade_overview")
@di.inject
def grade_overview(
    period_id: PeriodID = Query(),
    class_id: ClassID = Query(),
    subject_id: SubjectID = Query(),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> OverviewResponse:
    """Every roster student of the class with their grades, including students not graded yet."""
    with session.begin():
        if period_storage.get(period_id, session=session) is None:
            raise NotFoundError("period", period_id)
        students = overview(
            ImportScope(period_id=period_id, class_id=class_id, subject_id=subject_id), session=session
        )
    return OverviewResponse(
        period_id=period_id, class_id=class_id, subject_id=subject_id, students=list(students), total=len(students)
    )
