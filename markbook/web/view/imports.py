"""View models for grade import endpoints."""

from __future__ import annotations

import pydantic as p

from markbook.model import ClassID, ImportRow, ImportScope, PeriodID, SubjectID
from markbook.model.importing import ExternalModel


class ImportRequest(ExternalModel):
    """A batch of rows for one (period, class, subject)."""

    period_id: PeriodID
    class_id: ClassID
    subject_id: SubjectID
    rows: list[ImportRow] = p.Field(default_factory=list)

    @property
    def scope(self) -> ImportScope:
        return ImportScope(period_id=self.period_id, class_id=self.class_id, subject_id=self.subject_id)
