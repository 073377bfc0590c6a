"""Pytest fixtures for gradebook tests.

Most tests build the grading services directly on top of a private in-memory
SQLite database (one per test), with a deterministic clock so that ordering by
time is predictable. The `container` fixture boots the full dependency
injection container against the ``test`` environment for wiring tests.

Usage:
    def test_something(ledger: GradeLedger, grade_factory):
        record = grade_factory(score=85)
        assert ledger.get_current_grade(record.learner_id, record.module_id) == record
"""

from __future__ import annotations

import datetime
import itertools
import os
import typing as t
from pathlib import Path

import pydantic as p
import pytest
import sqlalchemy
import sqlalchemy.orm
import sqlalchemy.pool
from sqlalchemy.orm import Session

import gradebook
import gradebook.lib.json as json
from gradebook.core import GradebookContainer, TimestampProvider
from gradebook.core.config import AuditSettings, GradingSettings
from gradebook.grading import AuditTrail, CourseGradeAggregator, GradeLedger, StaticModuleCatalog
from gradebook.model import DeploymentEnvironment, GradeRecord, Module
from gradebook.storage.table import metadata

T0 = datetime.datetime(2025, 1, 6, 9, 0, tzinfo=datetime.UTC)


@pytest.fixture(scope="session")
def container() -> t.Generator[GradebookContainer]:
    """Boot the DI container for the test session.

    The test environment uses an in-memory SQLite database; the schema is
    created from table metadata.
    """
    ct = GradebookContainer()
    root = Path(os.path.dirname(gradebook.__file__)).parent

    GradebookContainer.boot(
        ct,
        debug=True,
        env=DeploymentEnvironment.Test,
        config_root=p.FileUrl(f"file://{root}/config"),
        override=(),
    )
    metadata.create_all(ct.storage().persistent().engine())

    yield ct

    ct.shutdown_resources()


def create_engine() -> sqlalchemy.Engine:
    engine = sqlalchemy.create_engine(
        "sqlite+pysqlite:///:memory:",
        poolclass=sqlalchemy.pool.StaticPool,
        connect_args={"check_same_thread": False},
        json_serializer=json.dumps,
        json_deserializer=json.loads,
    )
    metadata.create_all(engine)
    return engine


@pytest.fixture
def engine() -> t.Generator[sqlalchemy.Engine]:
    """A private in-memory database with the schema created."""
    engine = create_engine()
    yield engine
    engine.dispose()


@pytest.fixture
def sessionmaker(engine: sqlalchemy.Engine) -> sqlalchemy.orm.sessionmaker[Session]:
    return sqlalchemy.orm.sessionmaker(engine, expire_on_commit=False, autoflush=False, autobegin=False)


@pytest.fixture
def db_session(sessionmaker: sqlalchemy.orm.sessionmaker[Session]) -> t.Generator[Session]:
    """A session without an open transaction; tests wrap calls in ``db_session.begin()``."""
    with sessionmaker() as session:
        yield session


@pytest.fixture
def utcnow() -> TimestampProvider:
    """A clock that advances one second on every reading."""
    ticks = itertools.count()
    return lambda: T0 + datetime.timedelta(seconds=next(ticks))


@pytest.fixture
def grading_settings() -> GradingSettings:
    return GradingSettings()


@pytest.fixture
def catalog() -> StaticModuleCatalog:
    return StaticModuleCatalog()


@pytest.fixture
def module_factory(catalog: StaticModuleCatalog) -> t.Callable[..., Module]:
    """Factory fixture that registers modules with the test catalog.

    Usage:
        def test_something(module_factory):
            module = module_factory(weight=40, is_critical=True)
    """
    counter = itertools.count(1)

    def create_module(
        *,
        course_id: str = "course-1",
        module_id: str | None = None,
        title: str | None = None,
        weight: float = 100,
        is_critical: bool = False,
        passing_score: int = 70,
    ) -> Module:
        n = next(counter)
        module = Module(
            module_id=module_id or f"module-{n}",
            course_id=course_id,
            title=title or f"Module {n}",
            weight=weight,
            is_critical=is_critical,
            passing_score=passing_score,
        )
        catalog.add(module)
        return module

    return create_module


@pytest.fixture
def audit(
    sessionmaker: sqlalchemy.orm.sessionmaker[Session], utcnow: TimestampProvider
) -> t.Generator[AuditTrail]:
    settings = AuditSettings()
    trail = AuditTrail(
        sessionmaker,
        utcnow,
        buffer_size=settings.buffer_size,
        default_limit=settings.default_limit,
    )
    yield trail
    trail.close()


@pytest.fixture
def ledger(
    sessionmaker: sqlalchemy.orm.sessionmaker[Session],
    audit: AuditTrail,
    utcnow: TimestampProvider,
    grading_settings: GradingSettings,
) -> GradeLedger:
    return GradeLedger(sessionmaker, audit, utcnow, grading_settings)


@pytest.fixture
def aggregator(
    sessionmaker: sqlalchemy.orm.sessionmaker[Session],
    catalog: StaticModuleCatalog,
    ledger: GradeLedger,
    audit: AuditTrail,
    utcnow: TimestampProvider,
    grading_settings: GradingSettings,
) -> CourseGradeAggregator:
    return CourseGradeAggregator(sessionmaker, catalog, ledger, audit, utcnow, grading_settings)


@pytest.fixture
def grade_factory(ledger: GradeLedger) -> t.Callable[..., GradeRecord]:
    """Factory fixture for entering grades through the ledger.

    Usage:
        def test_something(grade_factory):
            record = grade_factory(score=60, passing_score=70)
    """

    def enter(
        *,
        learner_id: str = "learner-1",
        course_id: str = "course-1",
        module_id: str = "module-1",
        score: float = 85,
        passing_score: int = 70,
        grader_id: str = "grader-1",
        grader_name: str = "Grace Grader",
        notes: str | None = None,
    ) -> GradeRecord:
        return ledger.enter_grade(
            learner_id, course_id, module_id, score, passing_score, grader_id, grader_name, notes
        )

    return enter
