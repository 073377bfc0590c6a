from __future__ import annotations

import typing as t

import sqlalchemy.orm
from dependency_injector.containers import DeclarativeContainer
from dependency_injector.providers import Configuration, Dependency, Factory, Object, Provider, Resource, Singleton

from gradebook.grading.aggregator import CourseGradeAggregator, TrustedCourseGradeCalculator
from gradebook.grading.audit import AuditTrail
from gradebook.grading.catalog import ModuleCatalog, StaticModuleCatalog
from gradebook.grading.ledger import GradeLedger

from ..config.grading import AuditSettings, GradingSettings
from ..provider import TimestampProvider


def provide_audit_trail(
    sessionmaker: sqlalchemy.orm.sessionmaker[sqlalchemy.orm.Session],
    clock: TimestampProvider,
    config: AuditSettings,
) -> t.Generator[AuditTrail]:
    audit = AuditTrail(
        sessionmaker,
        clock,
        buffer_size=config.buffer_size,
        default_limit=config.default_limit,
        background=config.background,
        workers=config.workers,
    )
    yield audit
    audit.close()


class GradingContainer(DeclarativeContainer):
    config = Configuration()
    audit_config = Configuration()
    sessionmaker: Provider[sqlalchemy.orm.sessionmaker[sqlalchemy.orm.Session]] = Dependency()
    utcnow: Provider[TimestampProvider] = Dependency()

    settings: Provider[GradingSettings] = Singleton(GradingSettings.model_validate, config)
    catalog: Provider[ModuleCatalog] = Singleton(StaticModuleCatalog)
    trusted_calculator: Provider[TrustedCourseGradeCalculator | None] = Object(None)

    audit: Provider[AuditTrail] = Resource(
        provide_audit_trail,
        sessionmaker=sessionmaker,
        clock=utcnow,
        config=Singleton(AuditSettings.model_validate, audit_config),
    )
    ledger: Provider[GradeLedger] = Factory(
        GradeLedger,
        sessionmaker=sessionmaker,
        audit=audit,
        clock=utcnow,
        settings=settings,
    )
    aggregator: Provider[CourseGradeAggregator] = Factory(
        CourseGradeAggregator,
        sessionmaker=sessionmaker,
        catalog=catalog,
        ledger=ledger,
        audit=audit,
        clock=utcnow,
        settings=settings,
        trusted_calculator=trusted_calculator,
    )
