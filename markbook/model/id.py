from __future__ import annotations

import typing as t

import annotated_types as ant
import pydantic as p
import pydantic_core.core_schema as core_schema
import shortuuid


class ShortUUIDKey(str):
    """
    Prefixed identifier of the form ``<prefix>$<shortuuid>``.

    Storage keeps only the 22-character shortuuid (see ``key``), everything
    else passes the prefixed form around so that a student id can never be
    mistaken for a class id.
    """

    prefix: t.ClassVar[str]
    separator: t.ClassVar[str]
    KeyLength: t.ClassVar[int] = 22

    @p.validate_call
    def __init_subclass__(
        cls, prefix: t.Annotated[str, ant.MinLen(4)], separator: t.Annotated[str, ant.Len(1, 1)] = "$"
    ):
        super().__init_subclass__()
        cls.prefix = prefix
        cls.separator = separator

    def __new__(cls, s: str | None = None, /, key: str | None = None) -> t.Self:
        """
        Validate an already prefixed ``s``, or prefix a bare ``key`` without
        validation when unmarshaling from storage. With neither, mint a new id.
        """
        if key is None and s is None:
            key = shortuuid.uuid()
        if key is not None:
            return super().__new__(cls, f"{cls.prefix}{cls.separator}{key}")

        head = cls.prefix + cls.separator
        if not s.startswith(head):
            raise ValueError(f"invalid {cls.__name__}: key must begin with {cls.prefix}")
        body = s[len(head):]
        if len(body) != cls.KeyLength:
            raise ValueError(f"invalid {cls.__name__}: key must have length {cls.KeyLength}")
        alphabet = shortuuid.get_alphabet()
        if any(c not in alphabet for c in body):
            raise ValueError(f"invalid {cls.__name__}: key must comprise only {alphabet}")
        return super().__new__(cls, s)

    @classmethod
    def _validate(cls, v: ShortUUIDKey | str | None) -> ShortUUIDKey | None:
        return None if v is None else cls(v)

    @classmethod
    def __get_pydantic_json_schema__(cls, src: t.Any, handler: p.GetJsonSchemaHandler) -> p.json_schema.JsonSchemaValue:
        return {"type": "string", "pattern": f"^{cls.prefix}\\{cls.separator}"}

    @classmethod
    def __get_pydantic_core_schema__(cls, src: t.Any, handler: p.GetCoreSchemaHandler) -> core_schema.CoreSchema:
        from_str = core_schema.no_info_after_validator_function(cls._validate, core_schema.str_schema())
        return core_schema.json_or_python_schema(
            json_schema=from_str,
            python_schema=core_schema.union_schema([core_schema.is_instance_schema(cls), from_str]),
            serialization=core_schema.plain_serializer_function_ser_schema(str.__str__),
        )

    @property
    def key(self) -> str:
        return self[len(self.prefix) + len(self.separator):]

    def __hash__(self) -> int:
        return str.__hash__(self)

    def __str__(self) -> str:
        return str.__str__(self)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.key}>"


# fmt: off
class UserID(ShortUUIDKey, prefix="user"): ...
class StudentID(ShortUUIDKey, prefix="student"): ...
class ClassID(ShortUUIDKey, prefix="class"): ...
class SubjectID(ShortUUIDKey, prefix="subject"): ...
class SemesterID(ShortUUIDKey, prefix="semester"): ...
class PeriodID(ShortUUIDKey, prefix="period"): ...
class GradeRecordID(ShortUUIDKey, prefix="grade"): ...
class ProposalID(ShortUUIDKey, prefix="proposal"): ...
class AuditEntryID(ShortUUIDKey, prefix="audit"): ...
# fmt: on
