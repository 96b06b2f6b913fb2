__all__ = [
    # Base
    "BaseModel",
    "WithCtime",
    "WithMtime",
    "WithTimestamps",
    # Enums
    "DeploymentEnvironment",
    # ID Types
    "AuditEntryID",
    "ClassID",
    "GradeRecordID",
    "PeriodID",
    "ProposalID",
    "SemesterID",
    "StudentID",
    "SubjectID",
    "UserID",
    # Grades
    "ComponentCategory",
    "GradeComponent",
    "GradeKey",
    "GradeRecord",
    "GradeValue",
    # Periods
    "ComponentPeriod",
    "GradingPeriod",
    "PeriodKind",
    "PeriodShape",
    "SummaryPeriod",
    # Roster
    "RosterEntry",
    # Overrides
    "AuditEntry",
    "Decision",
    "OverrideProposal",
    "ProposalState",
    "Resolution",
    # Overview
    "StudentOverview",
    # Import
    "CommitResult",
    "ImportOutcome",
    "ImportRow",
    "ImportScope",
    "ImportStatistics",
    "InvalidRow",
    "Issue",
    "IssueKind",
    "RawCell",
    "RowOutcome",
    "Severity",
    "StudentCommitOutcome",
    "StudentCommitStatus",
    "TypedRow",
    "ValidationResult",
    "ValidRow",
]

from .base import BaseModel, WithCtime, WithMtime, WithTimestamps
from .enum import DeploymentEnvironment
from .grade import ComponentCategory, GradeComponent, GradeKey, GradeRecord, GradeValue
from .id import AuditEntryID, ClassID, GradeRecordID, PeriodID, ProposalID, SemesterID, StudentID, SubjectID, UserID
from .importing import CommitResult, ImportOutcome, ImportRow, ImportScope, ImportStatistics, InvalidRow, Issue, \
    IssueKind, RawCell, RowOutcome, Severity, StudentCommitOutcome, StudentCommitStatus, TypedRow, ValidationResult, \
    ValidRow
from .override import AuditEntry, Decision, OverrideProposal, ProposalState, Resolution
from .overview import StudentOverview
from .period import ComponentPeriod, GradingPeriod, PeriodKind, PeriodShape, SummaryPeriod
from .roster import RosterEntry
