from __future__ import annotations

import logging
import typing as t

from sqlalchemy.orm import Session

from markbook.model import AuditEntry
from markbook.storage import audit as audit_storage

logger = logging.getLogger(__name__)


class AuditSink(t.Protocol):
    """Append-only destination for resolved override decisions.

    `append` must have durably accepted the entry, within the caller's
    transaction, by the time it returns.
    """

    def append(self, entry: AuditEntry, *, session: Session) -> AuditEntry: ...


class StorageAuditSink(object):
    def append(self, entry: AuditEntry, *, session: Session) -> AuditEntry:
        stored = audit_storage.append(entry, session=session)
        logger.info(
            "override %s",
            entry.decision.value,
            extra={
                "audit_id": str(entry.audit_id),
                "proposal_id": str(entry.proposal_id),
                "actor_id": str(entry.actor_id),
                "old_value": str(entry.old_value),
                "new_value": str(entry.new_value),
            },
        )
        return stored
