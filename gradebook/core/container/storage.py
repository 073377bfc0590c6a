from __future__ import annotations

import typing as t
from pathlib import Path

import alembic.config
import sqlalchemy
import sqlalchemy.event
import sqlalchemy.orm
import sqlalchemy.pool
from dependency_injector.containers import DeclarativeContainer
from dependency_injector.providers import Configuration, Container, Factory, Object, Provider, Resource, Singleton
from sqlalchemy.engine.url import URL as DSN

import gradebook.lib.json as json

from ..config.secrets import PostgresqlSecrets
from ..config.storage import PersistentSettings
from ..di import NotReady
from ..provider import LoggingProvider


def provide_dsn(cf: dict[str, t.Any], secrets_cf: dict[str, t.Any] | None) -> DSN:
    config = PersistentSettings.model_validate(cf)
    secrets = PostgresqlSecrets.model_validate(secrets_cf or {})
    if config.postgresql is not None:
        pg = config.postgresql
        return DSN.create(
            pg.driver,
            database=pg.database,
            username=secrets.username.get_secret_value() if secrets.username else None,
            password=secrets.password.get_secret_value() if secrets.password else None,
            port=pg.port,
            host=str(pg.host) if pg.host else None,
        )

    assert config.sqlite is not None
    return DSN.create(config.sqlite.driver, database=config.sqlite.path)


def provide_alembic_conf(migration_path: Path, dsn: DSN, root: Path | NotReady) -> alembic.config.Config:
    if isinstance(root, NotReady):
        raise RuntimeError("root path is unavailable")

    escaped_str = dsn.render_as_string(hide_password=False).replace("%", "%%")

    ac = alembic.config.Config()
    ac.set_main_option("script_location", str(root / migration_path))
    ac.set_section_option("alembic", "sqlalchemy.url", escaped_str)
    ac.set_section_option("alembic", "file_template", "%%(year)d-%%(month).2d-%%(day).2d-%%(slug)s-%%(rev)s")
    return ac


def provide_engine(dsn: DSN, logging: LoggingProvider) -> t.Generator[sqlalchemy.Engine]:
    logger = logging.get_logger()

    kwargs: dict[str, t.Any] = {"json_serializer": json.dumps, "json_deserializer": json.loads}
    if dsn.get_backend_name() == "sqlite" and dsn.database in (None, "", ":memory:"):
        # one shared connection, or every session would see its own empty database
        kwargs |= {"poolclass": sqlalchemy.pool.StaticPool, "connect_args": {"check_same_thread": False}}

    engine = sqlalchemy.create_engine(dsn, **kwargs)
    if dsn.get_backend_name() == "postgresql":
        sqlalchemy.event.listen(engine, "connect", register_timezone)
    logger.info(
        "initialized SQLAlchemy engine",
        extra={
            "driver": dsn.drivername,
            "database": dsn.database,
            "host": dsn.host,
            "port": dsn.port,
        },
    )
    yield engine
    engine.dispose()
    logger.debug("disposed SQLAlchemy engine", extra={"driver": dsn.drivername})


def provide_sessionmaker(engine: sqlalchemy.Engine) -> sqlalchemy.orm.sessionmaker[sqlalchemy.orm.Session]:
    """Sessions do not autobegin; callers open a transaction with ``session.begin()``."""
    return sqlalchemy.orm.sessionmaker(engine, expire_on_commit=False, autoflush=False, autobegin=False)


def provide_session(sessionmaker: sqlalchemy.orm.sessionmaker[sqlalchemy.orm.Session]) -> sqlalchemy.orm.Session:
    """Create a new session. Caller is responsible for closing it."""
    return sessionmaker()


class PersistentContainer(DeclarativeContainer):
    config = Configuration()
    secrets = Configuration()
    logging: Provider[LoggingProvider] = Resource()
    root: Provider[Path | NotReady] = Object()

    dsn: Provider[DSN] = Singleton(
        provide_dsn,
        cf=config,
        secrets_cf=secrets.postgresql,
    )
    alembic_config: Provider[alembic.config.Config] = Singleton(
        provide_alembic_conf,
        migration_path=Path("migrations/"),
        dsn=dsn,
        root=root,
    )
    engine: Provider[sqlalchemy.Engine] = Resource(provide_engine, dsn=dsn, logging=logging)
    sessionmaker: Provider[sqlalchemy.orm.sessionmaker[sqlalchemy.orm.Session]] = Singleton(
        provide_sessionmaker, engine=engine
    )
    session: Provider[sqlalchemy.orm.Session] = Factory(provide_session, sessionmaker=sessionmaker)


class StorageContainer(DeclarativeContainer):
    config = Configuration(strict=True)
    secrets = Configuration()
    logging: Provider[LoggingProvider] = Resource()
    root: Provider[Path | NotReady] = Object()

    persistent: Provider[PersistentContainer] = Container(
        PersistentContainer, config=config.persistent, secrets=secrets, logging=logging, root=root
    )


def register_timezone(dbapi_conn: t.Any, _: t.Any) -> None:
    """Set connection timezone to UTC for consistent datetime handling.

    PostgreSQL TIMESTAMP WITH TIME ZONE stores timestamps in UTC but returns
    them converted to the connection's timezone.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("SET TIMEZONE TO 'UTC'")
    cursor.close()
