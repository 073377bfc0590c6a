import datetime

from sqlalchemy.engine import Dialect
from sqlalchemy.sql.type_api import TypeDecorator
from sqlalchemy.types import DateTime, String

from gradebook.model.id import AuditLogID, GradeID


class AuditLogIDType(TypeDecorator[AuditLogID]):
    """Stores only the key part of an `AuditLogID`; the prefix is implied by the column."""

    impl = String(AuditLogID.key_length)
    cache_ok = True

    def process_bind_param(self, value: AuditLogID | str | None, dialect: Dialect) -> str | None:
        if value is None:
            return None
        return AuditLogID(value).key

    def process_result_value(self, value: str | None, dialect: Dialect) -> AuditLogID | None:
        return AuditLogID(key=value) if value is not None else None


class GradeIDType(TypeDecorator[GradeID]):
    impl = String
    cache_ok = True

    def process_bind_param(self, value: str | None, dialect: Dialect) -> str | None:
        return str(value) if value is not None else None

    def process_result_value(self, value: str | None, dialect: Dialect) -> GradeID | None:
        return GradeID(value) if value is not None else None


class UTCDateTime(TypeDecorator[datetime.datetime]):
    """Timezone-aware UTC timestamps on every backend.

    SQLite has no timezone support, so values are stored there as naive UTC
    and re-tagged on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime.datetime | None, dialect: Dialect) -> datetime.datetime | None:
        if value is None:
            return value
        if value.tzinfo is None:
            raise ValueError(f"naive datetime cannot be stored: {value!r}")
        value = value.astimezone(datetime.UTC)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime.datetime | None, dialect: Dialect) -> datetime.datetime | None:
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=datetime.UTC)
        return value
