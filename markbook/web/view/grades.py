from __future__ import annotations

import pydantic as p

from markbook.model import ClassID, PeriodID, StudentOverview, SubjectID


class OverviewResponse(p.BaseModel):
    period_id: PeriodID
    class_id: ClassID
    subject_id: SubjectID
    students: list[StudentOverview]
    total: int
