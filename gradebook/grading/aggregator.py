"""Weighted course grade aggregation.

Every module of the course contributes ``score * weight / 100`` from its
current grade; an ungraded module contributes zero rather than being skipped.
A course is passed only if every critical module is passed *and* the rounded
weighted total reaches the configured minimum.
"""

from __future__ import annotations

import logging
import typing as t

import sqlalchemy.orm

from gradebook.core.config import GradingSettings
from gradebook.core.provider import TimestampProvider
from gradebook.model import AuditActionType, CourseGradeCalculation, CourseGradeSnapshot, Module, ModuleScore, \
    TrustedCourseGrade
from gradebook.storage import course_grade as course_grade_storage

from .audit import AuditTrail
from .catalog import ModuleCatalog
from .errors import NoModulesError, TrustedCalculatorUnavailableError, WeightPolicyError
from .ledger import GradeLedger
from .score import round_half_up

logger = logging.getLogger(__name__)


class TrustedCourseGradeCalculator(t.Protocol):
    """Server-authoritative calculation, for contexts where a preview is not good enough."""

    def __call__(self, learner_id: str, course_id: str) -> TrustedCourseGrade: ...


def check_weights(modules: t.Sequence[Module], tolerance: float) -> str | None:
    """Describe the problem if module weights do not sum to 100, else None."""
    total = sum(m.weight for m in modules)
    # tiny slack so that float noise at exactly the tolerance is not flagged
    if abs(total - 100) > tolerance + 1e-9:
        return f"Module weights must sum to 100. Current total: {total:g}. Check course configuration."
    return None


class CourseGradeAggregator(object):
    def __init__(
        self,
        sessionmaker: sqlalchemy.orm.sessionmaker[sqlalchemy.orm.Session],
        catalog: ModuleCatalog,
        ledger: GradeLedger,
        audit: AuditTrail,
        clock: TimestampProvider,
        settings: GradingSettings,
        trusted_calculator: TrustedCourseGradeCalculator | None = None,
    ):
        self._sessionmaker = sessionmaker
        self._catalog = catalog
        self._ledger = ledger
        self._audit = audit
        self._clock = clock
        self._settings = settings
        self._trusted_calculator = trusted_calculator

    def calculate_course_grade(self, learner_id: str, course_id: str) -> CourseGradeCalculation:
        """Preview calculation; tolerates misconfigured weights and persists nothing."""
        modules = self._catalog.get_modules(course_id)
        if not modules:
            raise NoModulesError(course_id)

        weight_warning = check_weights(modules, self._settings.weight_tolerance)
        if weight_warning:
            logger.warning(weight_warning, extra={"course_id": course_id})

        breakdown: list[ModuleScore] = []
        total_weighted = 0.0
        graded = 0
        total_critical = 0
        critical_passed = 0
        for module in modules:
            current = self._ledger.get_current_grade(learner_id, module.module_id)
            if current is not None:
                graded += 1
                weighted_score = current.score * module.weight / 100
                total_weighted += weighted_score
            else:
                weighted_score = None

            if module.is_critical:
                total_critical += 1
                if current is not None and current.passed:
                    critical_passed += 1

            breakdown.append(
                ModuleScore(
                    module_id=module.module_id,
                    module_title=module.title,
                    score=current.score if current else None,
                    weight=module.weight,
                    weighted_score=weighted_score,
                    is_critical=module.is_critical,
                    passed=current.passed if current else None,
                    passing_score=module.passing_score,
                )
            )

        overall_score = round_half_up(total_weighted)
        all_critical_passed = critical_passed == total_critical
        return CourseGradeCalculation(
            learner_id=learner_id,
            course_id=course_id,
            overall_score=overall_score,
            overall_passed=all_critical_passed and overall_score >= self._settings.minimum_overall_score,
            total_critical_modules=total_critical,
            critical_modules_passed=critical_passed,
            all_critical_modules_passed=all_critical_passed,
            module_breakdown=breakdown,
            total_modules=len(modules),
            graded_modules=graded,
            completion_percent=round_half_up(graded / len(modules) * 100),
            is_complete=graded == len(modules),
            calculated_at=self._clock(),
            weight_warning=weight_warning,
        )

    def calculate_and_save_course_grade(
        self, learner_id: str, course_id: str, actor_id: str, actor_name: str
    ) -> CourseGradeSnapshot:
        """Official calculation: refuses misconfigured courses, then upserts the snapshot."""
        calculation = self.calculate_course_grade(learner_id, course_id)
        if calculation.weight_warning:
            raise WeightPolicyError(course_id, calculation.weight_warning)

        with self._sessionmaker() as session, session.begin():
            snapshot = course_grade_storage.upsert(calculation, update_time=self._clock(), session=session)

        logger.info(
            "course grade saved",
            extra={
                "snapshot_id": snapshot.snapshot_id,
                "overall_score": snapshot.overall_score,
                "overall_passed": snapshot.overall_passed,
            },
        )
        self._audit.emit(
            actor_id,
            actor_name,
            AuditActionType.CourseUpdate,
            snapshot.snapshot_id,
            f"Calculated course grade: {snapshot.overall_score}% "
            f"({'PASSED' if snapshot.overall_passed else 'FAILED'}) - "
            f"Critical modules: {snapshot.critical_modules_passed}/{snapshot.total_critical_modules}",
            metadata={
                "learner_id": learner_id,
                "course_id": course_id,
                "overall_score": snapshot.overall_score,
                "overall_passed": snapshot.overall_passed,
            },
        )
        return snapshot

    def get_saved_course_grade(self, learner_id: str, course_id: str) -> CourseGradeSnapshot | None:
        with self._sessionmaker() as session, session.begin():
            return course_grade_storage.get(learner_id, course_id, session=session)

    def get_course_grade(
        self, learner_id: str, course_id: str, force_recalculate: bool = False
    ) -> CourseGradeSnapshot | CourseGradeCalculation:
        """Saved snapshot if there is one, else a fresh unsaved calculation."""
        if not force_recalculate:
            saved = self.get_saved_course_grade(learner_id, course_id)
            if saved is not None:
                return saved
        return self.calculate_course_grade(learner_id, course_id)

    def get_course_grades_for_course(self, course_id: str) -> tuple[CourseGradeSnapshot, ...]:
        with self._sessionmaker() as session, session.begin():
            return course_grade_storage.find(course_id=course_id, order_by="overall_score", session=session)

    def get_learner_course_grades(self, learner_id: str) -> tuple[CourseGradeSnapshot, ...]:
        with self._sessionmaker() as session, session.begin():
            return course_grade_storage.find(learner_id=learner_id, order_by="calculated_at", session=session)

    def get_trusted_course_grade(self, learner_id: str, course_id: str) -> TrustedCourseGrade:
        if self._trusted_calculator is None:
            raise TrustedCalculatorUnavailableError("no trusted course grade calculator is configured")

        trusted = self._trusted_calculator(learner_id, course_id)
        if self._settings.verify_trusted:
            preview = self.calculate_course_grade(learner_id, course_id)
            if (preview.overall_score, preview.overall_passed) != (trusted.overall_score, trusted.overall_passed):
                logger.error(
                    "local course grade preview disagrees with trusted calculation",
                    extra={
                        "learner_id": learner_id,
                        "course_id": course_id,
                        "preview_score": preview.overall_score,
                        "preview_passed": preview.overall_passed,
                        "trusted_score": trusted.overall_score,
                        "trusted_passed": trusted.overall_passed,
                    },
                )
        return trusted
