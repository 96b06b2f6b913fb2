__all__ = [
    "AggregationPrecondition",
    "ApprovalGate",
    "AuditSink",
    "GradeAggregator",
    "GradingError",
    "ImportCommitter",
    "ImportPipeline",
    "ImportValidator",
    "JustificationRequired",
    "MissingRequiredError",
    "NotFoundError",
    "OverrideConflict",
    "OverrideDetector",
    "PersistenceError",
    "ProposalStateError",
    "RangeError",
    "RecordLockedError",
    "RosterError",
    "RosterErrorKind",
    "RosterResolver",
    "StaleWriteError",
    "StorageAuditSink",
]

from .aggregator import GradeAggregator
from .approval import ApprovalGate
from .audit import AuditSink, StorageAuditSink
from .committer import ImportCommitter
from .detector import OverrideDetector
from .errors import AggregationPrecondition, GradingError, JustificationRequired, MissingRequiredError, \
    NotFoundError, OverrideConflict, PersistenceError, ProposalStateError, RangeError, RecordLockedError, \
    RosterError, RosterErrorKind, StaleWriteError
from .pipeline import ImportPipeline
from .roster import RosterResolver
from .validator import ImportValidator
