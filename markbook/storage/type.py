import typing as t

from sqlalchemy.engine import Dialect
from sqlalchemy.sql.type_api import TypeDecorator
from sqlalchemy.types import String

from markbook.model.grade import GradeComponent
from markbook.model.id import ShortUUIDKey


class ShortUUIDKeyType(TypeDecorator[ShortUUIDKey]):
    impl = String
    cache_ok = True

    def __init__(self, key_type: type[ShortUUIDKey]):
        self.key_type = key_type
        super().__init__(22)  # length of shortuuid

    def process_bind_param(self, value: ShortUUIDKey | None, dialect: Dialect) -> str | None:
        if value is not None:
            return value.key
        return value

    def process_result_value(self, value: str | None, dialect: Dialect) -> ShortUUIDKey | None:
        if value is not None:
            value = self.key_type(key=value)
        return value


class GradeComponentType(TypeDecorator[GradeComponent]):
    """Stores a grade component by name, e.g. `regular_3` or `midterm`"""

    impl = String
    cache_ok = True

    def __init__(self):
        super().__init__(32)

    def process_bind_param(self, value: t.Any, dialect: Dialect) -> str | None:
        if value is None:
            return None
        return str.__str__(GradeComponent(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> GradeComponent | None:
        if value is not None:
            return GradeComponent(value)
        return value
