import datetime
import decimal
import typing as t

from sqlalchemy import ForeignKey, func, Index, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, MappedAsDataclass
from sqlalchemy.types import DateTime, JSON, Numeric

from markbook.core.config.grading import StoredScale
from markbook.model import AuditEntryID, ClassID, GradeComponent, GradeRecordID, PeriodID, ProposalID, SemesterID, \
    StudentID, SubjectID, UserID

from .type import GradeComponentType, ShortUUIDKeyType

# JSONB where available, plain JSON elsewhere
JSONDocument = JSON().with_variant(JSONB(), "postgresql")
# grading settings keep bounds and granularity within this scale
GradeNumeric = Numeric(4, StoredScale, asdecimal=True)


class base(MappedAsDataclass, DeclarativeBase):
    type_annotation_map = {
        UserID: ShortUUIDKeyType(UserID),
        StudentID: ShortUUIDKeyType(StudentID),
        ClassID: ShortUUIDKeyType(ClassID),
        SubjectID: ShortUUIDKeyType(SubjectID),
        SemesterID: ShortUUIDKeyType(SemesterID),
        PeriodID: ShortUUIDKeyType(PeriodID),
        GradeRecordID: ShortUUIDKeyType(GradeRecordID),
        ProposalID: ShortUUIDKeyType(ProposalID),
        AuditEntryID: ShortUUIDKeyType(AuditEntryID),
        GradeComponent: GradeComponentType(),
        decimal.Decimal: GradeNumeric,
        dict[str, t.Any]: JSONDocument,
        datetime.datetime: DateTime(timezone=True),
    }


# Periods & Roster


class grading_periods(base):
    __tablename__ = "grading_periods"

    period_id: Mapped[PeriodID] = mapped_column(primary_key=True)
    semester_id: Mapped[SemesterID] = mapped_column(index=True)
    name: Mapped[str]
    kind: Mapped[str]
    shape: Mapped[dict[str, t.Any]]
    create_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())


class roster_entries(base):
    __tablename__ = "roster_entries"
    __table_args__ = (UniqueConstraint("class_id", "period_id", "student_code"),)

    class_id: Mapped[ClassID] = mapped_column(primary_key=True)
    period_id: Mapped[PeriodID] = mapped_column(ForeignKey("grading_periods.period_id"), primary_key=True)
    student_id: Mapped[StudentID] = mapped_column(primary_key=True)
    student_code: Mapped[str]
    full_name: Mapped[str]
    create_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())


# Grades


class grade_records(base):
    __tablename__ = "grade_records"
    __table_args__ = (UniqueConstraint("period_id", "student_id", "subject_id", "class_id", "component"),)

    grade_id: Mapped[GradeRecordID] = mapped_column(primary_key=True)
    period_id: Mapped[PeriodID] = mapped_column(ForeignKey("grading_periods.period_id"))
    student_id: Mapped[StudentID]
    subject_id: Mapped[SubjectID]
    class_id: Mapped[ClassID]
    component: Mapped[GradeComponent]
    created_by: Mapped[UserID]

    value: Mapped[decimal.Decimal | None] = mapped_column(default=None)
    updated_by: Mapped[UserID | None] = mapped_column(default=None)
    is_final: Mapped[bool] = mapped_column(default=False)

    create_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())
    update_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now(), onupdate=func.now())


# Overrides


class override_proposals(base):
    __tablename__ = "override_proposals"

    proposal_id: Mapped[ProposalID] = mapped_column(primary_key=True)
    period_id: Mapped[PeriodID] = mapped_column(ForeignKey("grading_periods.period_id"))
    student_id: Mapped[StudentID]
    subject_id: Mapped[SubjectID]
    class_id: Mapped[ClassID]
    component: Mapped[GradeComponent]

    old_value: Mapped[decimal.Decimal]
    new_value: Mapped[decimal.Decimal]
    requested_by: Mapped[UserID]
    request_note: Mapped[str | None] = mapped_column(default=None)

    state: Mapped[str] = mapped_column(default="pending", index=True)
    justification: Mapped[str | None] = mapped_column(default=None)
    resolved_by: Mapped[UserID | None] = mapped_column(default=None)
    resolve_time: Mapped[datetime.datetime | None] = mapped_column(default=None)

    create_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())


# at most one pending proposal per grade cell
Index(
    "override_proposals_pending_key",
    override_proposals.period_id,
    override_proposals.student_id,
    override_proposals.subject_id,
    override_proposals.class_id,
    override_proposals.component,
    unique=True,
    postgresql_where=override_proposals.state == "pending",
    sqlite_where=override_proposals.state == "pending",
)


class audit_entries(base):
    __tablename__ = "audit_entries"

    audit_id: Mapped[AuditEntryID] = mapped_column(primary_key=True)
    proposal_id: Mapped[ProposalID] = mapped_column(ForeignKey("override_proposals.proposal_id"), index=True)
    period_id: Mapped[PeriodID]
    student_id: Mapped[StudentID]
    subject_id: Mapped[SubjectID]
    class_id: Mapped[ClassID]
    component: Mapped[GradeComponent]

    old_value: Mapped[decimal.Decimal]
    new_value: Mapped[decimal.Decimal]
    decision: Mapped[str]
    justification: Mapped[str]
    actor_id: Mapped[UserID]

    create_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())
