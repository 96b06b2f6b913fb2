from __future__ import annotations

import datetime
import decimal

import pydantic as p

from .base import BaseModel
from .grade import GradeComponent
from .id import StudentID, UserID


class StudentOverview(BaseModel):
    """One roster student's grades in a (period, class, subject), blank when never graded"""

    student_id: StudentID
    student_code: str
    full_name: str
    regular: list[decimal.Decimal | None] = p.Field(default_factory=list)
    midterm: decimal.Decimal | None = None
    final: decimal.Decimal | None = None
    summary: decimal.Decimal | None = None
    is_final: bool = False
    update_time: datetime.datetime | None = None
    updated_by: UserID | None = None

    def value(self, component: GradeComponent) -> decimal.Decimal | None:
        if component == GradeComponent.Midterm:
            return self.midterm
        if component == GradeComponent.Final:
            return self.final
        if component == GradeComponent.Summary:
            return self.summary
        i = component.index or 0
        return self.regular[i - 1] if 0 < i <= len(self.regular) else None
