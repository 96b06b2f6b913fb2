import datetime
import enum

import pydantic as p

from .base import BaseModel, WithCtime
from .grade import GradeComponent, GradeKey, GradeValue
from .id import AuditEntryID, ClassID, PeriodID, ProposalID, StudentID, SubjectID, UserID


class ProposalState(enum.Enum):
    Pending = "pending"
    Approved = "approved"
    Rejected = "rejected"


class Decision(enum.Enum):
    Approve = "approve"
    Reject = "reject"


class OverrideProposal(WithCtime, BaseModel):
    proposal_id: ProposalID
    period_id: PeriodID
    student_id: StudentID
    subject_id: SubjectID
    class_id: ClassID
    component: GradeComponent

    old_value: GradeValue
    new_value: GradeValue
    requested_by: UserID
    request_note: str | None = None

    state: ProposalState = ProposalState.Pending
    justification: str | None = None
    resolved_by: UserID | None = None
    resolve_time: datetime.datetime | None = None

    @property
    def key(self) -> GradeKey:
        return GradeKey(self.period_id, self.student_id, self.subject_id, self.class_id, self.component)


class AuditEntry(WithCtime, BaseModel):
    model_config = p.ConfigDict(frozen=True)

    audit_id: AuditEntryID
    proposal_id: ProposalID
    period_id: PeriodID
    student_id: StudentID
    subject_id: SubjectID
    class_id: ClassID
    component: GradeComponent

    old_value: GradeValue
    new_value: GradeValue
    decision: Decision
    justification: str
    actor_id: UserID


class Resolution(BaseModel):
    """Outcome of a reviewer decision on one proposal"""

    proposal: OverrideProposal
    audit: AuditEntry
    committed_value: GradeValue | None = None
