from __future__ import annotations

import enum
import typing as t

import pydantic as p

from .base import BaseModel, WithCtime
from .grade import GradeComponent
from .id import PeriodID, SemesterID


class PeriodKind(enum.Enum):
    Component = "component"
    Summary = "summary"


class ComponentPeriod(BaseModel):
    """A single grading window whose cells are entered directly."""

    kind: t.Literal["component"] = "component"
    required: frozenset[GradeComponent] = frozenset()
    regular_count: int | None = p.Field(default=None, ge=0)

    @p.field_validator("required")
    @classmethod
    def validate_required(cls, v: frozenset[GradeComponent]) -> frozenset[GradeComponent]:
        if GradeComponent.Summary in v:
            raise ValueError("summary is derived and cannot be a required cell")
        return v


class SummaryPeriod(BaseModel):
    """A window whose values are reconciled from sibling component periods."""

    kind: t.Literal["summary"] = "summary"
    source_period_ids: tuple[PeriodID, ...]

    @p.field_validator("source_period_ids")
    @classmethod
    def validate_sources(cls, v: tuple[PeriodID, ...]) -> tuple[PeriodID, ...]:
        if not v:
            raise ValueError("a summary period needs at least one source period")
        if len(set(v)) != len(v):
            raise ValueError("source periods must be distinct")
        return v


PeriodShape = t.Annotated[ComponentPeriod | SummaryPeriod, p.Field(discriminator="kind")]


class GradingPeriod(WithCtime, BaseModel):
    period_id: PeriodID
    semester_id: SemesterID
    name: str
    shape: PeriodShape

    @property
    def kind(self) -> PeriodKind:
        return PeriodKind(self.shape.kind)

    @property
    def required(self) -> frozenset[GradeComponent]:
        if isinstance(self.shape, ComponentPeriod):
            return self.shape.required
        return frozenset()

    @property
    def regular_count(self) -> int | None:
        if isinstance(self.shape, ComponentPeriod):
            return self.shape.regular_count
        return None

    @property
    def source_period_ids(self) -> tuple[PeriodID, ...]:
        if isinstance(self.shape, SummaryPeriod):
            return self.shape.source_period_ids
        return ()
