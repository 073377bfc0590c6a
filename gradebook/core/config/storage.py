from __future__ import annotations

import typing as t

import pydantic as p

from .base import SectionSettings


class StorageSettings(SectionSettings):
    persistent: PersistentSettings


class PersistentSettings(SectionSettings):
    """Exactly one backend is expected to be configured."""

    postgresql: PostgresqlSettings | None = None
    sqlite: SQLiteSettings | None = None

    @p.model_validator(mode="after")
    def check_backend(self) -> t.Self:
        if (self.postgresql is None) == (self.sqlite is None):
            raise ValueError("exactly one of storage.persistent.postgresql or storage.persistent.sqlite is required")
        return self


class PostgresqlSettings(SectionSettings):
    host: p.IPvAnyAddress | str | None = None
    port: int = 5432
    database: str
    driver: t.Literal["postgresql+psycopg"] = "postgresql+psycopg"


class SQLiteSettings(SectionSettings):
    # ":memory:" for a private in-process database
    path: str = ":memory:"
    driver: t.Literal["sqlite+pysqlite"] = "sqlite+pysqlite"
