from __future__ import annotations

import typing as t

import pydantic as p

from .base import BaseSettings


class StorageSettings(BaseSettings):
    persistent: PersistentSettings


class PersistentSettings(BaseSettings):
    postgresql: PostgresqlSettings | None = None
    sqlite: SqliteSettings | None = None

    @p.model_validator(mode="after")
    def validate_backend(self) -> t.Self:
        if (self.postgresql is None) == (self.sqlite is None):
            raise ValueError("exactly one of storage.persistent.postgresql or storage.persistent.sqlite is required")
        return self


class PostgresqlSettings(BaseSettings):
    host: p.IPvAnyAddress | str | None = None
    port: int = 5432
    database: str
    username: str | None = None
    password: p.SecretStr | None = None
    driver: t.Literal["postgresql+psycopg"] = "postgresql+psycopg"


class SqliteSettings(BaseSettings):
    """In-process database, used by the test environment.

    A missing path means an in-memory database shared by every connection.
    """

    path: str | None = None
    driver: t.Literal["sqlite+pysqlite"] = "sqlite+pysqlite"
