from .base import BaseModel, WithCtime
from .id import ClassID, PeriodID, StudentID


class RosterEntry(WithCtime, BaseModel):
    class_id: ClassID
    period_id: PeriodID
    student_id: StudentID
    student_code: str
    full_name: str
