from __future__ import annotations

import decimal
import logging
import typing as t

import sqlalchemy.exc
from sqlalchemy.orm import Session

from markbook.core.provider import TRACE
from markbook.model import CommitResult, GradeComponent, GradeKey, ImportScope, ProposalID, StudentCommitOutcome, \
    StudentCommitStatus, TypedRow, UserID
from markbook.storage import grade as grade_storage
from markbook.storage import transaction

from .aggregator import GradeAggregator
from .detector import OverrideDetector
from .errors import GradingError, PersistenceError, RecordLockedError, StaleWriteError

logger = logging.getLogger(__name__)


class CellWrite(t.NamedTuple):
    component: GradeComponent
    written: bool
    proposal_id: ProposalID | None = None


class ImportCommitter(object):
    """
    Writes validated rows, one student at a time.

    Each student runs in its own transaction (a savepoint when the caller
    already holds one), so a failure rolls back that student only and is
    reported in the ledger while the rest of the batch proceeds. Rows are
    upserted by composite key: read the record, then create it or update it
    conditionally on the value that was read.
    """

    def __init__(self, detector: OverrideDetector, aggregator: GradeAggregator):
        self.detector = detector
        self.aggregator = aggregator

    def commit(
        self, rows: t.Iterable[TypedRow], scope: ImportScope, *, actor: UserID, session: Session
    ) -> CommitResult:
        ledger = [self.commit_student(row, scope, actor=actor, session=session) for row in rows]

        failed = [o for o in ledger if o.status is StudentCommitStatus.Failed]
        result = CommitResult(
            success=not failed,
            imported_count=sum(1 for o in ledger if o.status is StudentCommitStatus.Committed),
            error_count=len(failed),
            errors=[f"row {o.row_number} ({o.student_code}): {o.error}" for o in failed],
            proposal_ids=[pid for o in ledger for pid in o.proposal_ids],
            ledger=ledger,
        )
        logger.info(
            "committed import batch",
            extra={
                "period_id": str(scope.period_id),
                "class_id": str(scope.class_id),
                "subject_id": str(scope.subject_id),
                "imported": result.imported_count,
                "failed": result.error_count,
                "proposals": len(result.proposal_ids),
            },
        )
        return result

    def commit_student(
        self, row: TypedRow, scope: ImportScope, *, actor: UserID, session: Session
    ) -> StudentCommitOutcome:
        outcome = StudentCommitOutcome(
            row_number=row.row_number,
            student_code=row.student_code,
            student_id=row.student_id,
            status=StudentCommitStatus.Unchanged,
        )
        try:
            with transaction(session):
                writes = [
                    self.write_cell(
                        GradeKey(scope.period_id, row.student_id, scope.subject_id, scope.class_id, component),
                        value,
                        actor=actor,
                        note=row.note,
                        session=session,
                    )
                    for component, value in row.cells()
                ]
                if any(w.written for w in writes):
                    self.aggregator.recompute(
                        scope.period_id,
                        student_id=row.student_id,
                        subject_id=scope.subject_id,
                        class_id=scope.class_id,
                        actor=actor,
                        session=session,
                    )
        except GradingError as e:
            return self._failed(outcome, e)
        except sqlalchemy.exc.SQLAlchemyError as e:
            return self._failed(outcome, PersistenceError(f"storage failure: {e.__class__.__name__}"), e)

        outcome.written = [w.component for w in writes if w.written]
        outcome.proposal_ids = [w.proposal_id for w in writes if w.proposal_id is not None]
        if outcome.written:
            outcome.status = StudentCommitStatus.Committed
        elif outcome.proposal_ids:
            outcome.status = StudentCommitStatus.Proposed
        return outcome

    def write_cell(
        self, key: GradeKey, value: decimal.Decimal, *, actor: UserID, note: str | None, session: Session
    ) -> CellWrite:
        """Upsert one cell, or route it to the override detector.

        Raises:
            RecordLockedError: the record is final and `value` differs
            StaleWriteError: the record changed between read and write
            OverrideConflict: a proposal for a protected cell is already pending
        """
        current = grade_storage.get(key, session=session)

        if current is not None and current.value == value:
            return CellWrite(key.component, written=False)
        if current is not None and current.is_final:
            raise RecordLockedError(key)

        if key.component.is_protected and self.detector.needs_override(current, value):
            proposal = self.detector.detect(
                key, value, requested_by=actor, note=note, current=current, session=session
            )
            if proposal is not None:
                return CellWrite(key.component, written=False, proposal_id=proposal.proposal_id)

        if current is None:
            try:
                with transaction(session):
                    grade_storage.create(key, value=value, created_by=actor, session=session)
            except sqlalchemy.exc.IntegrityError as e:
                # another writer created the key after we read it
                raise StaleWriteError(key, None) from e
        elif grade_storage.update(key, value=value, updated_by=actor, expected=current.value, session=session) is None:
            raise StaleWriteError(key, current.value)

        logger.log(TRACE, "grade written", extra={"key": key.describe(), "value": str(value)})
        return CellWrite(key.component, written=True)

    @staticmethod
    def _failed(
        outcome: StudentCommitOutcome, error: GradingError, cause: BaseException | None = None
    ) -> StudentCommitOutcome:
        logger.warning(
            "student commit failed",
            exc_info=cause,
            extra={
                "row_number": outcome.row_number,
                "student_code": outcome.student_code,
                "error": str(error),
            },
        )
        outcome.status = StudentCommitStatus.Failed
        outcome.error = str(error)
        return outcome
