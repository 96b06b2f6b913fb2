from __future__ import annotations

import decimal
import logging

import sqlalchemy.exc
from sqlalchemy.orm import Session

from markbook.model import GradeKey, GradeRecord, OverrideProposal, UserID
from markbook.storage import grade as grade_storage
from markbook.storage import override as override_storage
from markbook.storage import transaction

from .errors import OverrideConflict, RecordLockedError

logger = logging.getLogger(__name__)


class OverrideDetector(object):
    """
    Decides whether a protected cell may be written directly or needs a
    reviewer. A proposal is raised only when a different, non-null value is
    already committed; at most one proposal per key may be pending.
    """

    def needs_override(self, current: GradeRecord | None, proposed: decimal.Decimal) -> bool:
        return current is not None and current.value is not None and current.value != proposed

    def detect(
        self,
        key: GradeKey,
        proposed: decimal.Decimal,
        *,
        requested_by: UserID,
        note: str | None = None,
        current: GradeRecord | None = None,
        session: Session,
    ) -> OverrideProposal | None:
        """Raise a pending proposal for `key` if `proposed` would change its committed value.

        Returns None when the value may be written directly.

        Raises:
            OverrideConflict: a proposal for `key` is already pending
            RecordLockedError: the committed record is final
        """
        if not key.component.is_protected:
            raise ValueError(f"{key.component} is not a protected component")

        current = current or grade_storage.get(key, session=session)
        if current is None or current.value is None or current.value == proposed:
            return None
        if current.is_final:
            raise RecordLockedError(key)

        pending = override_storage.get_pending(key, session=session)
        if pending is not None:
            raise OverrideConflict(key, pending.proposal_id)

        try:
            with transaction(session):
                proposal = override_storage.create(
                    {
                        "key": key,
                        "old_value": current.value,
                        "new_value": proposed,
                        "requested_by": requested_by,
                        "request_note": note,
                    },
                    session=session,
                )
        except sqlalchemy.exc.IntegrityError as e:
            # lost the race against another writer on the pending index
            raise OverrideConflict(key) from e

        logger.info(
            "override proposal raised",
            extra={
                "proposal_id": str(proposal.proposal_id),
                "key": key.describe(),
                "old_value": str(proposal.old_value),
                "new_value": str(proposal.new_value),
            },
        )
        return proposal
