import typing as t

from pydantic_settings import BaseSettings as PydanticBaseSettings

from markbook.model import BaseModel


# BaseModel comes second so that its by_alias dump default applies to settings
class BaseSettings(PydanticBaseSettings, BaseModel):  # pyright: ignore [reportIncompatibleVariableOverride]
    def __init__(self, cf: dict[str, t.Any] | None = None, **kwargs: t.Any):
        # containers build sections from a plain config dict
        if cf is not None:
            kwargs = {**cf, **kwargs}
        super().__init__(**kwargs)
