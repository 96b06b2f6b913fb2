from __future__ import annotations

import decimal
import enum
import typing as t

from markbook.model import GradeComponent, GradeKey, ProposalID, ProposalState


class GradingError(Exception):
    """Base of every error raised by the grade import pipeline"""


class RosterErrorKind(enum.Enum):
    UnknownCode = "unknown_code"
    DuplicateCode = "duplicate_code"
    MalformedCode = "malformed_code"


class RosterError(GradingError):
    def __init__(self, kind: RosterErrorKind, code: str, message: str | None = None):
        self.kind = kind
        self.code = code
        super().__init__(message or f"{kind.value}: {code!r}")


class RangeError(GradingError):
    """A cell is not a number, falls outside the grade bounds or the granularity"""

    def __init__(self, field: str, value: t.Any, message: str):
        self.field = field
        self.value = value
        super().__init__(message)


class MissingRequiredError(GradingError):
    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"{field} is required")


class OverrideConflict(GradingError):
    def __init__(self, key: GradeKey, pending: ProposalID | None = None):
        self.key = key
        self.pending = pending
        super().__init__(f"an override proposal is already pending for {key.describe()}")


class PersistenceError(GradingError): ...


class StaleWriteError(PersistenceError):
    def __init__(self, key: GradeKey, expected: decimal.Decimal | None):
        self.key = key
        self.expected = expected
        super().__init__(f"{key.describe()} no longer holds {expected}; it was changed concurrently")


class RecordLockedError(PersistenceError):
    def __init__(self, key: GradeKey):
        self.key = key
        super().__init__(f"{key.describe()} is final and cannot be changed")


class AggregationPrecondition(GradingError):
    def __init__(self, missing: t.Collection[GradeComponent | str]):
        self.missing = tuple(missing)
        super().__init__(f"summary needs {', '.join(str(m) for m in self.missing)}")


class ProposalStateError(GradingError):
    def __init__(self, proposal_id: ProposalID, state: ProposalState | None, message: str | None = None):
        self.proposal_id = proposal_id
        self.state = state
        super().__init__(message or f"proposal {proposal_id} is {state.value if state else 'missing'}, not pending")


class JustificationRequired(GradingError):
    def __init__(self, proposal_id: ProposalID):
        self.proposal_id = proposal_id
        super().__init__(f"a justification is required to resolve proposal {proposal_id}")


class NotFoundError(GradingError):
    def __init__(self, what: str, key: t.Any):
        self.what = what
        self.key = key
        super().__init__(f"{what} {key} not found")
