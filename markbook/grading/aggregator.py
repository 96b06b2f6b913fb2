from __future__ import annotations

import decimal
import logging
import typing as t

from sqlalchemy.orm import Session

from markbook.core.config.grading import GradingSettings
from markbook.model import ClassID, ComponentCategory, GradeComponent, GradeKey, GradingPeriod, PeriodID, PeriodKind, \
    StudentID, SubjectID, UserID
from markbook.storage import grade as grade_storage
from markbook.storage import period as period_storage

from .errors import AggregationPrecondition, NotFoundError

logger = logging.getLogger(__name__)

ComponentValues = t.Mapping[GradeComponent, decimal.Decimal | None]

MidtermWeight = decimal.Decimal(2)
FinalWeight = decimal.Decimal(3)


class GradeAggregator(object):
    """
    Computes the derived summary grade

        summary = (sum(regular) + 2 * midterm + 3 * final) / (count(regular) + 5)

    rounded half up to `grading.summary_precision` places. The formula only
    reads settled component values; it never looks at override proposals.
    """

    def __init__(self, settings: GradingSettings | None = None):
        self.settings = settings or GradingSettings()

    @property
    def quantum(self) -> decimal.Decimal:
        return decimal.Decimal(1).scaleb(-self.settings.summary_precision)

    def compute(self, values: ComponentValues) -> decimal.Decimal:
        """
        Raises:
            AggregationPrecondition: midterm, final or every regular grade is missing
        """
        regular = [v for c, v in values.items() if c.category is ComponentCategory.Regular and v is not None]
        midterm = values.get(GradeComponent.Midterm)
        final = values.get(GradeComponent.Final)

        missing: list[str] = []
        if not regular:
            missing.append("at least one regular grade")
        if midterm is None:
            missing.append(GradeComponent.Midterm)
        if final is None:
            missing.append(GradeComponent.Final)
        if missing:
            raise AggregationPrecondition(missing)

        total = sum(regular, decimal.Decimal(0)) + MidtermWeight * t.cast(decimal.Decimal, midterm)
        total += FinalWeight * t.cast(decimal.Decimal, final)
        divisor = len(regular) + MidtermWeight + FinalWeight
        return (total / divisor).quantize(self.quantum, rounding=decimal.ROUND_HALF_UP)

    @staticmethod
    def reconcile(layers: t.Sequence[ComponentValues]) -> dict[GradeComponent, decimal.Decimal]:
        """Merge the values of several source periods.

        Regular grades of every layer all count and are renumbered in layer
        order. Midterm and final keep the first non-null value.
        """
        merged: dict[GradeComponent, decimal.Decimal] = {}
        regular: list[decimal.Decimal] = []
        for layer in layers:
            for component in sorted(layer, key=GradeComponent.sort_key):
                value = layer[component]
                if value is None:
                    continue
                match component.category:
                    case ComponentCategory.Regular:
                        regular.append(value)
                    case ComponentCategory.Protected:
                        merged.setdefault(component, value)
        for index, value in enumerate(regular, start=1):
            merged[GradeComponent.regular(index)] = value
        return merged

    def gather(
        self,
        period: GradingPeriod,
        *,
        student_id: StudentID,
        subject_id: SubjectID,
        class_id: ClassID,
        session: Session,
    ) -> dict[GradeComponent, decimal.Decimal]:
        """The component values the summary of one student in `period` is computed from.

        A summary period reads its source periods only, never its own records.
        """
        if period.kind is PeriodKind.Summary:
            period_ids: list[PeriodID] = list(period.source_period_ids)
        else:
            period_ids = [period.period_id]

        layers: list[dict[GradeComponent, decimal.Decimal | None]] = []
        for period_id in period_ids:
            records = grade_storage.find(
                period_id=period_id, class_id=class_id, subject_id=subject_id, student_id=student_id, session=session
            )
            layers.append({r.component: r.value for r in records})
        return self.reconcile(layers)

    def recompute(
        self,
        period_id: PeriodID,
        *,
        student_id: StudentID,
        subject_id: SubjectID,
        class_id: ClassID,
        actor: UserID,
        session: Session,
        cascade: bool = True,
    ) -> decimal.Decimal | None:
        """Recompute and persist the summary of one student.

        The stored summary is only written when it differs from the computed
        one. When the formula's inputs are incomplete the stored summary is
        cleared. With `cascade`, summary periods sourcing `period_id` are
        recomputed as well.
        """
        period = period_storage.get(period_id, session=session)
        if period is None:
            raise NotFoundError("period", period_id)

        values = self.gather(period, student_id=student_id, subject_id=subject_id, class_id=class_id, session=session)
        try:
            summary: decimal.Decimal | None = self.compute(values)
        except AggregationPrecondition as e:
            logger.debug(
                "summary left unset",
                extra={"period_id": str(period_id), "student_id": str(student_id), "reason": str(e)},
            )
            summary = None

        key = GradeKey(period_id, student_id, subject_id, class_id, GradeComponent.Summary)
        self.store(key, summary, actor=actor, session=session)

        if cascade and period.kind is PeriodKind.Component:
            for dependent in period_storage.find_summaries(period_id, session=session):
                self.recompute(
                    dependent.period_id,
                    student_id=student_id,
                    subject_id=subject_id,
                    class_id=class_id,
                    actor=actor,
                    session=session,
                    cascade=False,
                )
        return summary

    def store(self, key: GradeKey, summary: decimal.Decimal | None, *, actor: UserID, session: Session) -> bool:
        existing = grade_storage.get(key, session=session)
        if existing is None:
            if summary is None:
                return False
            grade_storage.create(key, value=summary, created_by=actor, session=session)
        elif existing.value == summary:
            return False
        elif existing.is_final:
            logger.warning("summary is final and was not recomputed", extra={"key": key.describe()})
            return False
        else:
            grade_storage.update(key, value=summary, updated_by=actor, session=session)

        logger.info("stored summary", extra={"key": key.describe(), "value": str(summary)})
        return True
