from __future__ import annotations

import decimal
import logging

from sqlalchemy.orm import Session

from markbook.core.provider import TimestampProvider
from markbook.model import AuditEntry, AuditEntryID, Decision, OverrideProposal, ProposalID, ProposalState, \
    Resolution, UserID
from markbook.storage import grade as grade_storage
from markbook.storage import override as override_storage
from markbook.storage import transaction

from .aggregator import GradeAggregator
from .audit import AuditSink
from .errors import JustificationRequired, NotFoundError, ProposalStateError, RecordLockedError, StaleWriteError

logger = logging.getLogger(__name__)


class ApprovalGate(object):
    """
    The only path by which an already-committed protected value changes.

    Every decision is atomic: the proposal transition, the grade write (on
    approval), the audit entry and the summary recomputation either all
    happen or none do.
    """

    def __init__(self, aggregator: GradeAggregator, audit_sink: AuditSink, utcnow: TimestampProvider):
        self.aggregator = aggregator
        self.audit_sink = audit_sink
        self.utcnow = utcnow

    def approve(self, proposal_id: ProposalID, *, justification: str, actor: UserID, session: Session) -> Resolution:
        return self.resolve(proposal_id, Decision.Approve, justification=justification, actor=actor, session=session)

    def reject(self, proposal_id: ProposalID, *, justification: str, actor: UserID, session: Session) -> Resolution:
        return self.resolve(proposal_id, Decision.Reject, justification=justification, actor=actor, session=session)

    def resolve(
        self, proposal_id: ProposalID, decision: Decision, *, justification: str, actor: UserID, session: Session
    ) -> Resolution:
        """Apply a reviewer decision to a pending proposal.

        Raises:
            NotFoundError: no such proposal
            ProposalStateError: the proposal is no longer pending
            JustificationRequired: `justification` is blank
            RecordLockedError: (approve) the target record is final; the proposal stays pending
            StaleWriteError: (approve) the record no longer holds the proposal's old value;
                the proposal stays pending
        """
        justification = justification.strip()

        with transaction(session):
            proposal = override_storage.get(proposal_id, session=session)
            if proposal is None:
                raise NotFoundError("proposal", proposal_id)
            if proposal.state is not ProposalState.Pending:
                raise ProposalStateError(proposal_id, proposal.state)
            if not justification:
                raise JustificationRequired(proposal_id)

            committed = None
            if decision is Decision.Approve:
                committed = self._apply(proposal, actor=actor, session=session)
                state = ProposalState.Approved
            else:
                state = ProposalState.Rejected

            now = self.utcnow()
            resolved = override_storage.resolve(
                proposal_id,
                state=state,
                justification=justification,
                resolved_by=actor,
                resolve_time=now,
                session=session,
            )
            if resolved is None:
                # resolved by someone else between our read and write
                current = override_storage.get(proposal_id, session=session)
                raise ProposalStateError(proposal_id, current.state if current else None)

            entry = self.audit_sink.append(
                AuditEntry(
                    audit_id=AuditEntryID(),
                    proposal_id=proposal_id,
                    period_id=proposal.period_id,
                    student_id=proposal.student_id,
                    subject_id=proposal.subject_id,
                    class_id=proposal.class_id,
                    component=proposal.component,
                    old_value=proposal.old_value,
                    new_value=proposal.new_value,
                    decision=decision,
                    justification=justification,
                    actor_id=actor,
                    create_time=now,
                ),
                session=session,
            )

            if committed is not None:
                self.aggregator.recompute(
                    proposal.period_id,
                    student_id=proposal.student_id,
                    subject_id=proposal.subject_id,
                    class_id=proposal.class_id,
                    actor=actor,
                    session=session,
                )

        return Resolution(proposal=resolved, audit=entry, committed_value=committed)

    def _apply(self, proposal: OverrideProposal, *, actor: UserID, session: Session) -> decimal.Decimal | None:
        key = proposal.key
        record = grade_storage.get(key, session=session)
        if record is None:
            raise StaleWriteError(key, proposal.old_value)
        if record.is_final:
            raise RecordLockedError(key)

        updated = grade_storage.update(
            key, value=proposal.new_value, updated_by=actor, expected=proposal.old_value, session=session
        )
        if updated is None:
            raise StaleWriteError(key, proposal.old_value)
        logger.info(
            "override applied",
            extra={"key": key.describe(), "old_value": str(proposal.old_value), "new_value": str(updated.value)},
        )
        return updated.value
