"""Tests for markbook.storage.override and markbook.storage.audit modules."""

from __future__ import annotations

import datetime
import decimal
import typing as t

import pytest
import sqlalchemy.exc
from sqlalchemy.orm import Session

from markbook.core import TimestampProvider
from markbook.model import AuditEntry, AuditEntryID, ClassID, Decision, GradeKey, OverrideProposal, PeriodID, \
    ProposalID, ProposalState, RosterEntry, StudentID, SubjectID, UserID
from markbook.storage import audit as audit_storage
from markbook.storage import override as override_storage

D = decimal.Decimal


@pytest.fixture
def proposal_factory(db_session: Session, actor: UserID) -> t.Callable[..., OverrideProposal]:
    def create_proposal(key: GradeKey, old: str = "7", new: str = "8", note: str | None = None) -> OverrideProposal:
        with db_session.begin():
            return override_storage.create(
                {"key": key, "old_value": D(old), "new_value": D(new), "requested_by": actor, "request_note": note},
                session=db_session,
            )

    return create_proposal


class TestCreate(object):
    """Tests for override_storage.create()."""

    def test_create_pending(
        self,
        db_session: Session,
        roster: dict[str, RosterEntry],
        key_for: t.Callable[[RosterEntry, str], GradeKey],
        proposal_factory: t.Callable[..., OverrideProposal],
    ) -> None:
        key = key_for(roster["S001"], "midterm")

        proposal = proposal_factory(key, note="typo")

        with db_session.begin():
            pending = override_storage.get_pending(key, session=db_session)
        assert proposal.state is ProposalState.Pending
        assert proposal.request_note == "typo"
        assert pending == proposal

    def test_one_pending_proposal_per_key(
        self,
        roster: dict[str, RosterEntry],
        key_for: t.Callable[[RosterEntry, str], GradeKey],
        proposal_factory: t.Callable[..., OverrideProposal],
    ) -> None:
        key = key_for(roster["S001"], "final")
        proposal_factory(key)

        with pytest.raises(sqlalchemy.exc.IntegrityError):
            proposal_factory(key, new="9")

    def test_resolved_proposals_do_not_block(
        self,
        db_session: Session,
        roster: dict[str, RosterEntry],
        key_for: t.Callable[[RosterEntry, str], GradeKey],
        proposal_factory: t.Callable[..., OverrideProposal],
        reviewer: UserID,
        utcnow: TimestampProvider,
    ) -> None:
        key = key_for(roster["S001"], "final")
        first = proposal_factory(key)
        with db_session.begin():
            override_storage.resolve(
                first.proposal_id,
                state=ProposalState.Rejected,
                justification="no",
                resolved_by=reviewer,
                resolve_time=utcnow(),
                session=db_session,
            )

        second = proposal_factory(key, new="9")

        assert second.proposal_id != first.proposal_id


class TestResolve(object):
    """Tests for override_storage.resolve()."""

    def test_resolve_only_once(
        self,
        db_session: Session,
        roster: dict[str, RosterEntry],
        key_for: t.Callable[[RosterEntry, str], GradeKey],
        proposal_factory: t.Callable[..., OverrideProposal],
        reviewer: UserID,
        utcnow: TimestampProvider,
    ) -> None:
        proposal = proposal_factory(key_for(roster["S001"], "midterm"))

        with db_session.begin():
            resolved = override_storage.resolve(
                proposal.proposal_id,
                state=ProposalState.Approved,
                justification="re-graded exam",
                resolved_by=reviewer,
                resolve_time=utcnow(),
                session=db_session,
            )
            again = override_storage.resolve(
                proposal.proposal_id,
                state=ProposalState.Rejected,
                justification="changed my mind",
                resolved_by=reviewer,
                resolve_time=utcnow(),
                session=db_session,
            )

        assert resolved is not None
        assert resolved.state is ProposalState.Approved
        assert resolved.resolved_by == reviewer
        assert resolved.resolve_time is not None
        assert again is None

    def test_unknown_proposal(self, db_session: Session, reviewer: UserID, utcnow: TimestampProvider) -> None:
        with db_session.begin():
            result = override_storage.resolve(
                ProposalID(),
                state=ProposalState.Approved,
                justification="ok",
                resolved_by=reviewer,
                resolve_time=utcnow(),
                session=db_session,
            )

        assert result is None


class TestFind(object):
    """Tests for override_storage.find()."""

    def test_filters(
        self,
        db_session: Session,
        roster: dict[str, RosterEntry],
        key_for: t.Callable[[RosterEntry, str], GradeKey],
        proposal_factory: t.Callable[..., OverrideProposal],
    ) -> None:
        a = proposal_factory(key_for(roster["S001"], "midterm"))
        b = proposal_factory(key_for(roster["S002"], "final"))

        with db_session.begin():
            pending = override_storage.find(state=ProposalState.Pending, session=db_session)
            of_s002 = override_storage.find(student_id=roster["S002"].student_id, session=db_session)
            approved = override_storage.find(state=ProposalState.Approved, session=db_session)

        assert {o.proposal_id for o in pending} == {a.proposal_id, b.proposal_id}
        assert [o.proposal_id for o in of_s002] == [b.proposal_id]
        assert approved == ()


class TestAudit(object):
    """Tests for audit_storage.append() and find()."""

    def test_append_and_find(
        self,
        db_session: Session,
        roster: dict[str, RosterEntry],
        key_for: t.Callable[[RosterEntry, str], GradeKey],
        proposal_factory: t.Callable[..., OverrideProposal],
        reviewer: UserID,
    ) -> None:
        key = key_for(roster["S001"], "midterm")
        proposal = proposal_factory(key)
        entry = AuditEntry(
            audit_id=AuditEntryID(),
            proposal_id=proposal.proposal_id,
            period_id=key.period_id,
            student_id=key.student_id,
            subject_id=key.subject_id,
            class_id=key.class_id,
            component=key.component,
            old_value=D("7"),
            new_value=D("8"),
            decision=Decision.Approve,
            justification="re-graded exam",
            actor_id=reviewer,
            create_time=datetime.datetime(2026, 3, 1, 12, 0, tzinfo=datetime.UTC),
        )

        with db_session.begin():
            stored = audit_storage.append(entry, session=db_session)
            by_key = audit_storage.find(key=key, session=db_session)
            by_proposal = audit_storage.find(proposal_id=proposal.proposal_id, session=db_session)

        assert stored.audit_id == entry.audit_id
        assert stored.decision is Decision.Approve
        assert by_key == by_proposal == (stored,)

    def test_entries_are_immutable(self, reviewer: UserID) -> None:
        entry = AuditEntry(
            audit_id=AuditEntryID(),
            proposal_id=ProposalID(),
            period_id=PeriodID(),
            student_id=StudentID(),
            subject_id=SubjectID(),
            class_id=ClassID(),
            component="midterm",
            old_value=D("7"),
            new_value=D("8"),
            decision=Decision.Reject,
            justification="no",
            actor_id=reviewer,
            create_time=datetime.datetime.now(datetime.UTC),
        )

        with pytest.raises(ValueError):
            entry.justification = "rewritten"  # pyright: ignore[reportAttributeAccessIssue]
