"""Tests for gradebook.grading.aggregator module."""

from __future__ import annotations

import datetime
import logging
import typing as t

import pytest
import sqlalchemy.orm
from sqlalchemy.orm import Session

from gradebook.core import TimestampProvider
from gradebook.core.config import GradingSettings
from gradebook.grading import AuditTrail, CourseGradeAggregator, GradeLedger, NoModulesError, StaticModuleCatalog, \
    TrustedCalculatorUnavailableError, WeightPolicyError
from gradebook.grading.aggregator import check_weights
from gradebook.model import AuditActionType, CourseGradeSnapshot, GradeRecord, Module, TrustedCourseGrade


class TestCalculateCourseGrade(object):
    """Tests for CourseGradeAggregator.calculate_course_grade()."""

    def test_weighted_average(
        self,
        aggregator: CourseGradeAggregator,
        module_factory: t.Callable[..., Module],
        grade_factory: t.Callable[..., GradeRecord],
    ) -> None:
        """Three modules weighted 40/30/30 scoring 90/80/70 average to 81."""
        for weight, score in [(40, 90), (30, 80), (30, 70)]:
            module = module_factory(weight=weight)
            grade_factory(module_id=module.module_id, score=score)

        result = aggregator.calculate_course_grade("learner-1", "course-1")

        assert result.overall_score == 81
        assert result.overall_passed is True
        assert result.is_complete is True
        assert result.completion_percent == 100
        assert result.weight_warning is None
        assert [m.weighted_score for m in result.module_breakdown] == [36, 24, 21]

    def test_failed_critical_module_fails_course(
        self,
        aggregator: CourseGradeAggregator,
        module_factory: t.Callable[..., Module],
        grade_factory: t.Callable[..., GradeRecord],
    ) -> None:
        """A failed critical module fails the course despite a high weighted average."""
        major = module_factory(weight=70)
        critical = module_factory(weight=30, is_critical=True, passing_score=70)
        grade_factory(module_id=major.module_id, score=95)
        grade_factory(module_id=critical.module_id, score=60, passing_score=70)

        result = aggregator.calculate_course_grade("learner-1", "course-1")

        assert result.overall_score == 85
        assert result.total_critical_modules == 1
        assert result.critical_modules_passed == 0
        assert result.all_critical_modules_passed is False
        assert result.overall_passed is False

    def test_ungraded_module_counts_as_zero(
        self,
        aggregator: CourseGradeAggregator,
        module_factory: t.Callable[..., Module],
        grade_factory: t.Callable[..., GradeRecord],
    ) -> None:
        """Half the course graded at 100 gives 50, not 100."""
        graded = module_factory(weight=50)
        ungraded = module_factory(weight=50)
        grade_factory(module_id=graded.module_id, score=100)

        result = aggregator.calculate_course_grade("learner-1", "course-1")

        assert result.overall_score == 50
        assert result.completion_percent == 50
        assert result.graded_modules == 1
        assert result.is_complete is False
        (missing,) = [m for m in result.module_breakdown if m.module_id == ungraded.module_id]
        assert missing.score is None
        assert missing.weighted_score is None
        assert missing.passed is None

    def test_ungraded_critical_module_is_not_passed(
        self, aggregator: CourseGradeAggregator, module_factory: t.Callable[..., Module]
    ) -> None:
        module_factory(weight=100, is_critical=True)

        result = aggregator.calculate_course_grade("learner-1", "course-1")

        assert result.critical_modules_passed == 0
        assert result.overall_passed is False

    def test_no_critical_modules(
        self,
        aggregator: CourseGradeAggregator,
        module_factory: t.Callable[..., Module],
        grade_factory: t.Callable[..., GradeRecord],
    ) -> None:
        """With nothing critical the course passes on score alone."""
        module = module_factory(weight=100)
        grade_factory(module_id=module.module_id, score=70)

        result = aggregator.calculate_course_grade("learner-1", "course-1")

        assert result.total_critical_modules == 0
        assert result.all_critical_modules_passed is True
        assert result.overall_passed is True

    def test_uses_current_grade_only(
        self,
        aggregator: CourseGradeAggregator,
        ledger: GradeLedger,
        module_factory: t.Callable[..., Module],
        grade_factory: t.Callable[..., GradeRecord],
    ) -> None:
        module = module_factory(weight=100)
        original = grade_factory(module_id=module.module_id, score=40)
        ledger.correct_grade(original.grade_id, 90, 70, "Late work accepted", "grader-1", "Grace Grader")

        assert aggregator.calculate_course_grade("learner-1", "course-1").overall_score == 90

    def test_breakdown_uses_module_passing_score(
        self,
        aggregator: CourseGradeAggregator,
        module_factory: t.Callable[..., Module],
        grade_factory: t.Callable[..., GradeRecord],
    ) -> None:
        module = module_factory(weight=100, passing_score=75)
        grade_factory(module_id=module.module_id, score=72, passing_score=60)

        (entry,) = aggregator.calculate_course_grade("learner-1", "course-1").module_breakdown

        assert entry.passing_score == 75
        assert entry.passed is True

    def test_no_modules(self, aggregator: CourseGradeAggregator) -> None:
        with pytest.raises(NoModulesError):
            aggregator.calculate_course_grade("learner-1", "course-empty")

    def test_bad_weights_warn_but_calculate(
        self,
        caplog: pytest.LogCaptureFixture,
        aggregator: CourseGradeAggregator,
        module_factory: t.Callable[..., Module],
        grade_factory: t.Callable[..., GradeRecord],
    ) -> None:
        caplog.set_level(logging.WARNING, logger="gradebook")
        module = module_factory(weight=60)
        module_factory(weight=30)
        grade_factory(module_id=module.module_id, score=100)

        result = aggregator.calculate_course_grade("learner-1", "course-1")

        assert result.overall_score == 60
        assert result.weight_warning == (
            "Module weights must sum to 100. Current total: 90. Check course configuration."
        )
        assert any(r.getMessage() == result.weight_warning for r in caplog.records)

    def test_calculation_does_not_persist(
        self,
        aggregator: CourseGradeAggregator,
        module_factory: t.Callable[..., Module],
        grade_factory: t.Callable[..., GradeRecord],
    ) -> None:
        module = module_factory(weight=100)
        grade_factory(module_id=module.module_id, score=80)

        aggregator.calculate_course_grade("learner-1", "course-1")

        assert aggregator.get_saved_course_grade("learner-1", "course-1") is None


class TestCheckWeights(object):
    """Tests for check_weights()."""

    def test_within_tolerance(self) -> None:
        modules = [
            Module(module_id="a", course_id="c", weight=33.33),
            Module(module_id="b", course_id="c", weight=66.68),
        ]
        assert check_weights(modules, 0.01) is None

    def test_outside_tolerance(self) -> None:
        modules = [Module(module_id="a", course_id="c", weight=50), Module(module_id="b", course_id="c", weight=50.5)]
        assert check_weights(modules, 0.01) is not None


class TestSaveCourseGrade(object):
    """Tests for CourseGradeAggregator.calculate_and_save_course_grade()."""

    def test_save_and_read_back(
        self,
        aggregator: CourseGradeAggregator,
        audit: AuditTrail,
        module_factory: t.Callable[..., Module],
        grade_factory: t.Callable[..., GradeRecord],
    ) -> None:
        critical = module_factory(weight=60, is_critical=True)
        other = module_factory(weight=40)
        grade_factory(module_id=critical.module_id, score=80)
        grade_factory(module_id=other.module_id, score=90)

        saved = aggregator.calculate_and_save_course_grade("learner-1", "course-1", "admin-1", "Ada Admin")

        assert saved.snapshot_id == "learner-1_course-1"
        assert saved.overall_score == 84
        assert aggregator.get_saved_course_grade("learner-1", "course-1") == saved

        (entry,) = audit.find(action_type=AuditActionType.CourseUpdate)
        assert entry.target_id == "learner-1_course-1"
        assert entry.details == "Calculated course grade: 84% (PASSED) - Critical modules: 1/1"

    def test_resave_overwrites_snapshot(
        self,
        aggregator: CourseGradeAggregator,
        ledger: GradeLedger,
        module_factory: t.Callable[..., Module],
        grade_factory: t.Callable[..., GradeRecord],
    ) -> None:
        module = module_factory(weight=100)
        original = grade_factory(module_id=module.module_id, score=50)
        aggregator.calculate_and_save_course_grade("learner-1", "course-1", "admin-1", "Ada Admin")
        ledger.correct_grade(original.grade_id, 75, 70, "Regrade", "grader-1", "Grace Grader")

        resaved = aggregator.calculate_and_save_course_grade("learner-1", "course-1", "admin-1", "Ada Admin")

        assert resaved.overall_score == 75
        assert aggregator.get_learner_course_grades("learner-1") == (resaved,)

    def test_bad_weights_refuse_save(
        self,
        aggregator: CourseGradeAggregator,
        module_factory: t.Callable[..., Module],
        grade_factory: t.Callable[..., GradeRecord],
    ) -> None:
        module = module_factory(weight=80)
        grade_factory(module_id=module.module_id, score=100)

        with pytest.raises(WeightPolicyError):
            aggregator.calculate_and_save_course_grade("learner-1", "course-1", "admin-1", "Ada Admin")

        assert aggregator.get_saved_course_grade("learner-1", "course-1") is None


class TestGetCourseGrade(object):
    """Tests for CourseGradeAggregator.get_course_grade()."""

    def test_prefers_saved_snapshot(
        self,
        aggregator: CourseGradeAggregator,
        module_factory: t.Callable[..., Module],
        grade_factory: t.Callable[..., GradeRecord],
    ) -> None:
        module = module_factory(weight=100)
        grade_factory(module_id=module.module_id, score=50)
        aggregator.calculate_and_save_course_grade("learner-1", "course-1", "admin-1", "Ada Admin")
        grade_factory(module_id=module.module_id, score=90)

        cached = aggregator.get_course_grade("learner-1", "course-1")
        fresh = aggregator.get_course_grade("learner-1", "course-1", force_recalculate=True)

        assert isinstance(cached, CourseGradeSnapshot)
        assert cached.overall_score == 50
        assert not isinstance(fresh, CourseGradeSnapshot)
        assert fresh.overall_score == 90

    def test_calculates_when_nothing_saved(
        self,
        aggregator: CourseGradeAggregator,
        module_factory: t.Callable[..., Module],
        grade_factory: t.Callable[..., GradeRecord],
    ) -> None:
        module = module_factory(weight=100)
        grade_factory(module_id=module.module_id, score=77)

        assert aggregator.get_course_grade("learner-1", "course-1").overall_score == 77


class TestCourseRoster(object):
    """Tests for CourseGradeAggregator.get_course_grades_for_course()."""

    def test_ranked_by_score(
        self,
        aggregator: CourseGradeAggregator,
        module_factory: t.Callable[..., Module],
        grade_factory: t.Callable[..., GradeRecord],
    ) -> None:
        module = module_factory(weight=100)
        for learner_id, score in [("ann", 71), ("bob", 93), ("cy", 85)]:
            grade_factory(learner_id=learner_id, module_id=module.module_id, score=score)
            aggregator.calculate_and_save_course_grade(learner_id, "course-1", "admin-1", "Ada Admin")

        roster = aggregator.get_course_grades_for_course("course-1")

        assert [(s.learner_id, s.overall_score) for s in roster] == [("bob", 93), ("cy", 85), ("ann", 71)]


class TestTrustedCourseGrade(object):
    """Tests for CourseGradeAggregator.get_trusted_course_grade()."""

    def test_unavailable_without_calculator(self, aggregator: CourseGradeAggregator) -> None:
        with pytest.raises(TrustedCalculatorUnavailableError):
            aggregator.get_trusted_course_grade("learner-1", "course-1")

    def test_mismatch_is_logged(
        self,
        caplog: pytest.LogCaptureFixture,
        sessionmaker: sqlalchemy.orm.sessionmaker[Session],
        catalog: StaticModuleCatalog,
        ledger: GradeLedger,
        audit: AuditTrail,
        utcnow: TimestampProvider,
        module_factory: t.Callable[..., Module],
        grade_factory: t.Callable[..., GradeRecord],
    ) -> None:
        """With verification on, disagreement is logged and the trusted result still wins."""
        caplog.set_level(logging.ERROR, logger="gradebook")
        module = module_factory(weight=100)
        grade_factory(module_id=module.module_id, score=80)
        trusted = TrustedCourseGrade(
            overall_score=65,
            overall_passed=False,
            calculated_at=datetime.datetime(2025, 1, 1, tzinfo=datetime.UTC),
        )
        aggregator = CourseGradeAggregator(
            sessionmaker,
            catalog,
            ledger,
            audit,
            utcnow,
            GradingSettings(verify_trusted=True),
            trusted_calculator=lambda learner_id, course_id: trusted,
        )

        assert aggregator.get_trusted_course_grade("learner-1", "course-1") == trusted
        assert any(r.levelno == logging.ERROR for r in caplog.records)
