from __future__ import annotations

import sqlalchemy as sqla

from markbook.core import di
from markbook.model import AuditEntry, AuditEntryID, GradeKey, ProposalID

from . import Session
from .table import audit_entries

# append-only: entries are never updated or deleted


def get(audit_id: AuditEntryID, *, session: Session = di.Provide["storage.persistent.session"]) -> AuditEntry | None:
    stmt = sqla.select(audit_entries.__table__).where(audit_entries.audit_id == audit_id)
    row = session.execute(stmt).mappings().one_or_none()
    return AuditEntry(**row) if row else None


def find(
    *,
    proposal_id: ProposalID | None = None,
    key: GradeKey | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[AuditEntry, ...]:
    stmt = sqla.select(audit_entries.__table__).order_by(audit_entries.create_time, audit_entries.audit_id)
    if proposal_id is not None:
        stmt = stmt.where(audit_entries.proposal_id == proposal_id)
    if key is not None:
        stmt = stmt.where(
            audit_entries.period_id == key.period_id,
            audit_entries.student_id == key.student_id,
            audit_entries.subject_id == key.subject_id,
            audit_entries.class_id == key.class_id,
            audit_entries.component == key.component,
        )
    rows = session.execute(stmt).mappings().all()
    return tuple(AuditEntry(**row) for row in rows)


def append(entry: AuditEntry, *, session: Session = di.Provide["storage.persistent.session"]) -> AuditEntry:
    stmt = sqla.insert(audit_entries).values(
        audit_id=entry.audit_id,
        proposal_id=entry.proposal_id,
        period_id=entry.period_id,
        student_id=entry.student_id,
        subject_id=entry.subject_id,
        class_id=entry.class_id,
        component=entry.component,
        old_value=entry.old_value,
        new_value=entry.new_value,
        decision=entry.decision.value,
        justification=entry.justification,
        actor_id=entry.actor_id,
        create_time=entry.create_time,
    )
    session.execute(stmt)
    session.flush()
    result = get(entry.audit_id, session=session)
    assert result is not None
    return result
