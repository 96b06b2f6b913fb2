from __future__ import annotations

import decimal
import enum
import re
import typing as t

import pydantic as p
import pydantic_core.core_schema as core_schema

from .base import BaseModel, WithTimestamps
from .id import ClassID, GradeRecordID, PeriodID, StudentID, SubjectID, UserID

GradeValue = t.Annotated[decimal.Decimal, p.Field(ge=0, le=10)]


class ComponentCategory(enum.Enum):
    Regular = "regular"
    Protected = "protected"
    Derived = "derived"


class GradeComponent(str):
    """
    Name of one grade cell within a (period, student, subject, class).

    regular_<n> components are repeatable and indexed from 1, midterm and final
    are singletons whose overwrite needs approval, summary is always computed
    """

    _regular: t.ClassVar[re.Pattern[str]] = re.compile(r"^regular_([1-9][0-9]*)$")

    Midterm: t.ClassVar[GradeComponent]
    Final: t.ClassVar[GradeComponent]
    Summary: t.ClassVar[GradeComponent]

    def __new__(cls, s: str) -> t.Self:
        s = s.strip().lower()
        if s not in ("midterm", "final", "summary") and not cls._regular.match(s):
            raise ValueError(f"invalid grade component: {s!r}")
        return super().__new__(cls, s)

    @classmethod
    def regular(cls, index: int) -> GradeComponent:
        if index < 1:
            raise ValueError(f"regular component index must be positive, got {index}")
        return cls(f"regular_{index}")

    @property
    def category(self) -> ComponentCategory:
        if self == "summary":
            return ComponentCategory.Derived
        if self in ("midterm", "final"):
            return ComponentCategory.Protected
        return ComponentCategory.Regular

    @property
    def index(self) -> int | None:
        m = self._regular.match(self)
        return int(m.group(1)) if m else None

    @property
    def is_protected(self) -> bool:
        return self.category is ComponentCategory.Protected

    def sort_key(self) -> tuple[int, int]:
        match self.category:
            case ComponentCategory.Regular:
                return 0, t.cast(int, self.index)
            case ComponentCategory.Protected:
                return 1, 0 if self == "midterm" else 1
            case ComponentCategory.Derived:
                return 2, 0

    @classmethod
    def __get_pydantic_core_schema__(cls, src: t.Any, handler: p.GetCoreSchemaHandler) -> core_schema.CoreSchema:
        from_str_schema = core_schema.no_info_after_validator_function(cls, core_schema.str_schema())
        return core_schema.json_or_python_schema(
            json_schema=from_str_schema,
            python_schema=core_schema.union_schema([core_schema.is_instance_schema(cls), from_str_schema]),
            serialization=core_schema.plain_serializer_function_ser_schema(str.__str__),
        )

    def __hash__(self) -> int:
        return str.__hash__(self)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {str.__str__(self)}>"


GradeComponent.Midterm = GradeComponent("midterm")
GradeComponent.Final = GradeComponent("final")
GradeComponent.Summary = GradeComponent("summary")


class GradeKey(t.NamedTuple):
    """Composite identity of one grade cell"""

    period_id: PeriodID
    student_id: StudentID
    subject_id: SubjectID
    class_id: ClassID
    component: GradeComponent

    def describe(self) -> str:
        return f"{self.student_id.key}/{self.subject_id.key}/{self.period_id.key}:{self.component}"


class GradeRecord(WithTimestamps, BaseModel):
    grade_id: GradeRecordID
    period_id: PeriodID
    student_id: StudentID
    subject_id: SubjectID
    class_id: ClassID
    component: GradeComponent

    value: GradeValue | None = None
    created_by: UserID
    updated_by: UserID | None = None
    is_final: bool = False

    @property
    def key(self) -> GradeKey:
        return GradeKey(self.period_id, self.student_id, self.subject_id, self.class_id, self.component)
