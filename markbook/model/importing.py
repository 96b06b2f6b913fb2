from __future__ import annotations

import decimal
import enum
import typing as t

import pydantic as p
from pydantic.alias_generators import to_camel

from .base import BaseModel
from .grade import GradeComponent
from .id import ClassID, PeriodID, ProposalID, StudentID, SubjectID

# raw spreadsheet cells arrive as whatever the reader produced
RawCell = str | int | float | decimal.Decimal | None


class ExternalModel(BaseModel):
    """Shapes returned to callers use the camelCase keys of the import contract."""

    model_config = p.ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImportRow(ExternalModel):
    """One loosely-shaped spreadsheet row, unchecked."""

    row_number: int | None = None
    student_code: RawCell = None
    regular: list[RawCell] = p.Field(default_factory=list)
    midterm: RawCell = None
    final: RawCell = None
    note: str | None = None


class ImportScope(ExternalModel):
    period_id: PeriodID
    class_id: ClassID
    subject_id: SubjectID


class Severity(enum.Enum):
    Error = "error"
    Warning = "warning"


class IssueKind(enum.Enum):
    RosterError = "RosterError"
    RangeError = "RangeError"
    MissingRequiredError = "MissingRequiredError"
    Notice = "Notice"


class Issue(ExternalModel):
    row_number: int | None
    student_code: str | None = None
    field: str
    value: t.Any = None
    severity: Severity
    kind: IssueKind
    message: str

    @p.field_serializer("value")
    def serialize_value(self, v: t.Any) -> t.Any:
        if isinstance(v, decimal.Decimal):
            return str(v)
        return v


class ImportStatistics(ExternalModel):
    total_rows: int = 0
    valid_rows: int = 0
    invalid_rows: int = 0
    empty_rows: int = 0
    duplicate_students: int = 0
    valid_grades: int = 0
    invalid_grades: int = 0
    missing_grades: int = 0


class TypedRow(ExternalModel):
    row_number: int
    student_code: str
    student_id: StudentID
    regular: tuple[decimal.Decimal | None, ...] = ()
    midterm: decimal.Decimal | None = None
    final: decimal.Decimal | None = None
    note: str | None = None

    def cells(self) -> t.Iterator[tuple[GradeComponent, decimal.Decimal]]:
        """Yield every non-empty cell; empty cells never reach storage."""
        for i, v in enumerate(self.regular, start=1):
            if v is not None:
                yield GradeComponent.regular(i), v
        if self.midterm is not None:
            yield GradeComponent.Midterm, self.midterm
        if self.final is not None:
            yield GradeComponent.Final, self.final


class ValidRow(t.NamedTuple):
    row: TypedRow


class InvalidRow(t.NamedTuple):
    row_number: int
    issues: tuple[Issue, ...]


RowOutcome = ValidRow | InvalidRow


class ValidationResult(ExternalModel):
    success: bool
    errors: list[Issue] = p.Field(default_factory=list)
    warnings: list[Issue] = p.Field(default_factory=list)
    statistics: ImportStatistics = p.Field(default_factory=ImportStatistics)
    data: list[TypedRow] = p.Field(default_factory=list)


class StudentCommitStatus(enum.Enum):
    Committed = "committed"
    Proposed = "proposed"
    Unchanged = "unchanged"
    Failed = "failed"


class StudentCommitOutcome(ExternalModel):
    row_number: int
    student_code: str
    student_id: StudentID
    status: StudentCommitStatus
    written: list[GradeComponent] = p.Field(default_factory=list)
    proposal_ids: list[ProposalID] = p.Field(default_factory=list)
    error: str | None = None


class CommitResult(ExternalModel):
    success: bool
    # students with at least one cell written; unchanged and proposed students are not counted
    imported_count: int = 0
    error_count: int = 0
    errors: list[str] = p.Field(default_factory=list)
    proposal_ids: list[ProposalID] = p.Field(default_factory=list)
    ledger: list[StudentCommitOutcome] = p.Field(default_factory=list)


class ImportOutcome(ExternalModel):
    validation: ValidationResult
    commit: CommitResult | None = None
