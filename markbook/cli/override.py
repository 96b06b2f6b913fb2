"""CLI commands for reviewing override proposals."""

from __future__ import annotations

from sqlalchemy.orm import Session

import markbook.lib.cli as click
from markbook.core import di
from markbook.grading import ApprovalGate, GradingError
from markbook.model import AuditEntry, ClassID, Decision, GradeComponent, GradeKey, OverrideProposal, PeriodID, \
    ProposalID, ProposalState, StudentID, SubjectID, UserID
from markbook.storage import audit as audit_storage
from markbook.storage import override as override_storage


def _describe(o: OverrideProposal) -> str:
    return (
        f"{o.proposal_id}  {o.state.value:<8}  {o.key.describe()}  {o.old_value} -> {o.new_value}  "
        f"requested by {o.requested_by} at {o.create_time:%Y-%m-%d %H:%M}"
    )


def _describe_audit(a: AuditEntry) -> str:
    return (
        f"{a.create_time:%Y-%m-%d %H:%M}  {a.decision.value:<7}  {a.old_value} -> {a.new_value}  "
        f"by {a.actor_id}: {a.justification}"
    )


@click.group("override")
def override():
    """Review override proposals for midterm and final grades."""
    ...


@override.command("list")
@click.option("--state", type=click.EnumType(ProposalState), default=ProposalState.Pending.value)
@click.option("--period", "period_id", type=click.KeyParamType(PeriodID), default=None)
@click.option("--class", "class_id", type=click.KeyParamType(ClassID), default=None)
@click.option("--subject", "subject_id", type=click.KeyParamType(SubjectID), default=None)
@click.option("--student", "student_id", type=click.KeyParamType(StudentID), default=None)
@di.inject
def override_list(
    state: ProposalState,
    period_id: PeriodID | None,
    class_id: ClassID | None,
    subject_id: SubjectID | None,
    student_id: StudentID | None,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """List override proposals, pending ones by default."""
    with session.begin():
        proposals = override_storage.find(
            state=state,
            period_id=period_id,
            class_id=class_id,
            subject_id=subject_id,
            student_id=student_id,
            session=session,
        )
    if not proposals:
        click.echo(f"No {state.value} proposals.")
        return
    for o in proposals:
        click.echo(_describe(o))


@override.command("show")
@click.argument("proposal_id", type=click.KeyParamType(ProposalID))
@di.inject
def override_show(proposal_id: ProposalID, session: Session = di.Provide["storage.persistent.session"]) -> None:
    """Show a proposal and the audit history of its grade cell."""
    with session.begin():
        found = override_storage.get(proposal_id, session=session)
        if found is None:
            raise click.ClickException(f"proposal {proposal_id} not found")
        history = audit_storage.find(key=found.key, session=session)
    click.echo(_describe(found))
    if found.request_note:
        click.echo(f"  note: {found.request_note}")
    if found.justification:
        click.echo(f"  resolved by {found.resolved_by}: {found.justification}")
    for a in history:
        click.echo("  " + _describe_audit(a))


def _resolve(
    gate: ApprovalGate, proposal_id: ProposalID, decision: Decision, justification: str, actor: UserID, session: Session
) -> None:
    try:
        with session.begin():
            resolution = gate.resolve(
                proposal_id, decision, justification=justification, actor=actor, session=session
            )
    except GradingError as e:
        raise click.ClickException(str(e)) from e
    click.echo(_describe(resolution.proposal))
    click.echo("  " + _describe_audit(resolution.audit))


@override.command("approve")
@click.argument("proposal_id", type=click.KeyParamType(ProposalID))
@click.option("--justification", "-j", prompt=True, required=True)
@click.option("--actor", "-a", type=click.KeyParamType(UserID), envvar="MARKBOOK_ACTOR", required=True)
@di.inject
def override_approve(
    proposal_id: ProposalID,
    justification: str,
    actor: UserID,
    gate: ApprovalGate = di.Provide["grading.approval"],
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Approve a pending proposal and commit its new value."""
    _resolve(gate, proposal_id, Decision.Approve, justification, actor, session)


@override.command("reject")
@click.argument("proposal_id", type=click.KeyParamType(ProposalID))
@click.option("--justification", "-j", prompt=True, required=True)
@click.option("--actor", "-a", type=click.KeyParamType(UserID), envvar="MARKBOOK_ACTOR", required=True)
@di.inject
def override_reject(
    proposal_id: ProposalID,
    justification: str,
    actor: UserID,
    gate: ApprovalGate = di.Provide["grading.approval"],
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Reject a pending proposal, leaving the committed value unchanged."""
    _resolve(gate, proposal_id, Decision.Reject, justification, actor, session)


@override.command("history")
@click.argument("period_id", type=click.KeyParamType(PeriodID))
@click.argument("class_id", type=click.KeyParamType(ClassID))
@click.argument("subject_id", type=click.KeyParamType(SubjectID))
@click.argument("student_id", type=click.KeyParamType(StudentID))
@click.argument("component", type=click.Choice(["midterm", "final"]))
@di.inject
def override_history(
    period_id: PeriodID,
    class_id: ClassID,
    subject_id: SubjectID,
    student_id: StudentID,
    component: str,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Print every decision taken on one protected grade cell."""
    key = GradeKey(period_id, student_id, subject_id, class_id, GradeComponent(component))
    with session.begin():
        entries = audit_storage.find(key=key, session=session)
    if not entries:
        click.echo(f"No decisions recorded for {key.describe()}.")
        return
    for a in entries:
        click.echo(f"{a.proposal_id}  " + _describe_audit(a))
