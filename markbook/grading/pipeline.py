from __future__ import annotations

import logging
import typing as t

from sqlalchemy.orm import Session

from markbook.core.config.grading import GradingSettings
from markbook.model import GradingPeriod, ImportOutcome, ImportRow, ImportScope, UserID, ValidationResult
from markbook.storage import period as period_storage
from markbook.storage import transaction

from .committer import ImportCommitter
from .errors import NotFoundError
from .roster import RosterResolver
from .validator import ImportValidator

logger = logging.getLogger(__name__)

Rows = t.Iterable[ImportRow | t.Mapping[str, t.Any]]


class ImportPipeline(object):
    """validate, then commit only when the whole batch validated"""

    def __init__(self, validator: ImportValidator, committer: ImportCommitter, settings: GradingSettings | None = None):
        self.validator = validator
        self.committer = committer
        self.settings = settings or GradingSettings()

    def prepare(self, scope: ImportScope, *, session: Session) -> tuple[GradingPeriod, RosterResolver]:
        period = period_storage.get(scope.period_id, session=session)
        if period is None:
            raise NotFoundError("period", scope.period_id)
        resolver = RosterResolver.load(
            scope.class_id, scope.period_id, session=session, code_pattern=self.settings.student_code_pattern
        )
        return period, resolver

    def validate(self, rows: Rows, scope: ImportScope, *, session: Session) -> ValidationResult:
        period, resolver = self.prepare(scope, session=session)
        return self.validator.validate(rows, resolver=resolver, period=period)

    def run(self, rows: Rows, scope: ImportScope, *, actor: UserID, session: Session) -> ImportOutcome:
        """Validate `rows` and commit them when the whole batch is clean.

        Validation runs in a read transaction of its own and every student is
        committed in a separate transaction, so `session` should not hold an
        open transaction: students committed before a failure stay committed.
        """
        with transaction(session):
            validation = self.validate(rows, scope, session=session)
        if not validation.success:
            logger.info(
                "import rejected by validation",
                extra={
                    "period_id": str(scope.period_id),
                    "class_id": str(scope.class_id),
                    "errors": len(validation.errors),
                },
            )
            return ImportOutcome(validation=validation)

        commit = self.committer.commit(validation.data, scope, actor=actor, session=session)
        return ImportOutcome(validation=validation, commit=commit)
