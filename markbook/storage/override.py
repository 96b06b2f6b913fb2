from __future__ import annotations

import datetime
import decimal
import typing as t

import sqlalchemy as sqla

from markbook.core import di
from markbook.model import ClassID, GradeKey, OverrideProposal, PeriodID, ProposalID, ProposalState, StudentID, \
    SubjectID, UserID

from . import Session
from .table import override_proposals


def get(
    proposal_id: ProposalID, *, session: Session = di.Provide["storage.persistent.session"]
) -> OverrideProposal | None:
    stmt = sqla.select(override_proposals.__table__).where(override_proposals.proposal_id == proposal_id)
    row = session.execute(stmt).mappings().one_or_none()
    return OverrideProposal(**row) if row else None


def get_pending(
    key: GradeKey, *, session: Session = di.Provide["storage.persistent.session"]
) -> OverrideProposal | None:
    """The active proposal against one grade cell, if any."""
    stmt = sqla.select(override_proposals.__table__).where(
        override_proposals.period_id == key.period_id,
        override_proposals.student_id == key.student_id,
        override_proposals.subject_id == key.subject_id,
        override_proposals.class_id == key.class_id,
        override_proposals.component == key.component,
        override_proposals.state == ProposalState.Pending.value,
    )
    row = session.execute(stmt).mappings().one_or_none()
    return OverrideProposal(**row) if row else None


def find(
    *,
    state: ProposalState | None = None,
    period_id: PeriodID | None = None,
    class_id: ClassID | None = None,
    subject_id: SubjectID | None = None,
    student_id: StudentID | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[OverrideProposal, ...]:
    stmt = sqla.select(override_proposals.__table__).order_by(
        override_proposals.create_time, override_proposals.proposal_id
    )
    if state is not None:
        stmt = stmt.where(override_proposals.state == state.value)
    if period_id is not None:
        stmt = stmt.where(override_proposals.period_id == period_id)
    if class_id is not None:
        stmt = stmt.where(override_proposals.class_id == class_id)
    if subject_id is not None:
        stmt = stmt.where(override_proposals.subject_id == subject_id)
    if student_id is not None:
        stmt = stmt.where(override_proposals.student_id == student_id)
    rows = session.execute(stmt).mappings().all()
    return tuple(OverrideProposal(**row) for row in rows)


def create(
    params: ProposalCreateParams, session: Session = di.Provide["storage.persistent.session"]
) -> OverrideProposal:
    """Persist a pending proposal.

    A second pending proposal for the same key violates the partial unique
    index and raises IntegrityError.
    """
    key = params["key"]
    proposal_id = ProposalID()
    stmt = sqla.insert(override_proposals).values(
        proposal_id=proposal_id,
        period_id=key.period_id,
        student_id=key.student_id,
        subject_id=key.subject_id,
        class_id=key.class_id,
        component=key.component,
        old_value=params["old_value"],
        new_value=params["new_value"],
        requested_by=params["requested_by"],
        request_note=params.get("request_note"),
        state=ProposalState.Pending.value,
    )
    session.execute(stmt)
    session.flush()
    result = get(proposal_id, session=session)
    assert result is not None
    return result


def resolve(
    proposal_id: ProposalID,
    *,
    state: t.Literal[ProposalState.Approved, ProposalState.Rejected],
    justification: str,
    resolved_by: UserID,
    resolve_time: datetime.datetime,
    session: Session = di.Provide["storage.persistent.session"],
) -> OverrideProposal | None:
    """Move a pending proposal to its final state.

    Returns None when the proposal is missing or no longer pending.
    """
    stmt = (
        sqla
        .update(override_proposals)
        .where(
            override_proposals.proposal_id == proposal_id,
            override_proposals.state == ProposalState.Pending.value,
        )
        .values(state=state.value, justification=justification, resolved_by=resolved_by, resolve_time=resolve_time)
    )
    result = session.execute(stmt)
    if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
        return None
    session.flush()
    return get(proposal_id, session=session)


class ProposalCreateParams(t.TypedDict, total=False):
    key: t.Required[GradeKey]
    old_value: t.Required[decimal.Decimal]
    new_value: t.Required[decimal.Decimal]
    requested_by: t.Required[UserID]
    request_note: str | None
