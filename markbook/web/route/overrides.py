"""Override proposal review API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from markbook.core import di
from markbook.grading import ApprovalGate, NotFoundError
from markbook.model import ClassID, Decision, PeriodID, ProposalID, ProposalState, SubjectID, UserID
from markbook.storage import audit as audit_storage
from markbook.storage import override as override_storage

from ..dependencies import get_actor
from ..view import DecisionRequest, DecisionResponse, ProposalListResponse, ProposalResponse

router = APIRouter(prefix="/api/overrides", tags=["overrides"])


@router.get("", operation_id="list_overrides")
@di.inject
def list_overrides(
    state: ProposalState | None = Query(ProposalState.Pending),
    period_id: PeriodID | None = Query(None),
    class_id: ClassID | None = Query(None),
    subject_id: SubjectID | None = Query(None),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> ProposalListResponse:
    """List override proposals, pending ones by default."""
    with session.begin():
        proposals = override_storage.find(
            state=state, period_id=period_id, class_id=class_id, subject_id=subject_id, session=session
        )
    return ProposalListResponse(proposals=list(proposals), total=len(proposals))


@router.get("/{proposal_id}", operation_id="get_override")
@di.inject
def get_override(
    proposal_id: ProposalID,
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> ProposalResponse:
    with session.begin():
        proposal = override_storage.get(proposal_id, session=session)
        if proposal is None:
            raise NotFoundError("proposal", proposal_id)
        history = audit_storage.find(key=proposal.key, session=session)
    return ProposalResponse(proposal=proposal, history=list(history))


@router.post("/{proposal_id}/approve", operation_id="approve_override")
@di.inject
def approve_override(
    proposal_id: ProposalID,
    request: DecisionRequest,
    actor: UserID = Depends(get_actor),
    gate: ApprovalGate = Depends(di.Provide["grading.approval"]),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> DecisionResponse:
    """Approve a pending proposal, committing its new value."""
    with session.begin():
        resolution = gate.resolve(
            proposal_id, Decision.Approve, justification=request.justification, actor=actor, session=session
        )
    return DecisionResponse.from_resolution(resolution)


@router.post("/{proposal_id}/reject", operation_id="reject_override")
@di.inject
def reject_override(
    proposal_id: ProposalID,
    request: DecisionRequest,
    actor: UserID = Depends(get_actor),
    gate: ApprovalGate = Depends(di.Provide["grading.approval"]),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> DecisionResponse:
    """Reject a pending proposal; the committed value is left as it was."""
    with session.begin():
        resolution = gate.resolve(
            proposal_id, Decision.Reject, justification=request.justification, actor=actor, session=session
        )
    return DecisionResponse.from_resolution(resolution)
