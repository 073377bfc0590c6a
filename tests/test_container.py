"""Tests for booting and resolving the dependency injection container."""

from __future__ import annotations

import sqlalchemy

from gradebook.core import GradebookContainer
from gradebook.core.config import GradingSettings
from gradebook.grading import AuditTrail, CourseGradeAggregator, GradeLedger
from gradebook.model import DeploymentEnvironment


class TestBoot(object):
    def test_test_environment_uses_memory_sqlite(self, container: GradebookContainer) -> None:
        engine = container.storage().persistent().engine()

        assert isinstance(engine, sqlalchemy.Engine)
        assert engine.dialect.name == "sqlite"
        assert container.env() is DeploymentEnvironment.Test

    def test_grading_settings_loaded(self, container: GradebookContainer) -> None:
        settings = container.grading().settings()

        assert isinstance(settings, GradingSettings)
        assert settings.minimum_overall_score == 70
        assert settings.correction.max_attempts >= 1


class TestGradingServices(object):
    def test_services_share_audit_trail(self, container: GradebookContainer) -> None:
        grading = container.grading()
        ledger = grading.ledger()
        aggregator = grading.aggregator()

        assert isinstance(ledger, GradeLedger)
        assert isinstance(aggregator, CourseGradeAggregator)
        assert isinstance(grading.audit(), AuditTrail)
        assert grading.audit() is grading.audit()

    def test_enter_grade_end_to_end(self, container: GradebookContainer) -> None:
        ledger = container.grading().ledger()

        record = ledger.enter_grade(
            "container-learner", "course-1", "module-1", 91, 70, "grader-1", "Grace Grader"
        )

        assert ledger.get_current_grade("container-learner", "module-1") == record
        entries = container.grading().audit().find(target_id=record.grade_id)
        assert [e.actor_id for e in entries] == ["grader-1"]
