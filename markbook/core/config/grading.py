import decimal
import typing as t

import annotated_types as ant
import pydantic as p

from .base import BaseSettings

# grade columns are NUMERIC(4, 2)
StoredScale = 2
StoredLimit = decimal.Decimal(100)


def decimal_places(value: decimal.Decimal) -> int:
    exponent = value.normalize().as_tuple().exponent
    return max(0, -exponent) if isinstance(exponent, int) else 0


class GradingSettings(BaseSettings):
    """Numeric rules applied to imported and derived grades."""

    min_value: decimal.Decimal = decimal.Decimal("0")
    max_value: decimal.Decimal = decimal.Decimal("10")
    granularity: t.Annotated[decimal.Decimal, ant.Gt(0)] = decimal.Decimal("0.1")
    summary_precision: t.Annotated[int, ant.Ge(0), ant.Le(StoredScale)] = 1
    max_regular_count: t.Annotated[int, ant.Gt(0)] = 10
    student_code_pattern: str = r"^[A-Za-z0-9]{3,20}$"

    @p.model_validator(mode="after")
    def validate_bounds(self) -> t.Self:
        if self.min_value >= self.max_value:
            raise ValueError("grading.min_value must be less than grading.max_value")
        if self.min_value <= -StoredLimit or self.max_value >= StoredLimit:
            raise ValueError(f"grading bounds must lie strictly between -{StoredLimit} and {StoredLimit}")
        for name in ("min_value", "max_value", "granularity"):
            if decimal_places(getattr(self, name)) > StoredScale:
                raise ValueError(f"grading.{name} may have at most {StoredScale} decimal places")
        return self
