"""Tests for gradebook.grading.correction module."""

from __future__ import annotations

import datetime
import types
import typing as t

import pytest
import sqlalchemy.exc
import sqlalchemy.orm
from sqlalchemy.orm import Session

from gradebook.grading import AuditTrail, GradeConflictError, GradeLedger, GradeNotFoundError, GradeValidationError
from gradebook.grading import correction
from gradebook.model import AuditActionType, GradeID, GradeRecord
from gradebook.storage import grade as grade_storage


class TestCorrectGrade(object):
    """Tests for GradeLedger.correct_grade()."""

    def test_correction_is_audited(
        self, ledger: GradeLedger, audit: AuditTrail, grade_factory: t.Callable[..., GradeRecord]
    ) -> None:
        original = grade_factory(score=60)
        corrected = ledger.correct_grade(original.grade_id, 85, 70, "Rubric misapplied", "grader-2", "Rita Reviewer")

        (entry,) = audit.find(action_type=AuditActionType.GradeChange)
        assert entry.target_id == corrected.grade_id
        assert entry.actor_id == "grader-2"
        assert entry.details == (
            f"Grade correction: {original.grade_id} -> 85% for user learner-1. Reason: Rubric misapplied"
        )

    def test_correction_keeps_pair_and_course(
        self, ledger: GradeLedger, grade_factory: t.Callable[..., GradeRecord]
    ) -> None:
        original = grade_factory(learner_id="learner-7", course_id="course-9", module_id="module-3", score=10)
        corrected = ledger.correct_grade(original.grade_id, 12.6, 70, "Arithmetic error", "grader-1", "Grace Grader")

        assert (corrected.learner_id, corrected.module_id, corrected.course_id) == (
            "learner-7",
            "module-3",
            "course-9",
        )
        assert corrected.score == 13
        assert corrected.passed is False

    def test_superseded_grade_is_rejected(
        self, ledger: GradeLedger, grade_factory: t.Callable[..., GradeRecord]
    ) -> None:
        """Correcting a retired record conflicts and changes nothing."""
        original = grade_factory(score=60)
        corrected = ledger.correct_grade(original.grade_id, 85, 70, "Appeal upheld", "grader-2", "Rita Reviewer")
        before = ledger.get_grade_history("learner-1", "module-1")

        with pytest.raises(GradeConflictError) as exc_info:
            ledger.correct_grade(original.grade_id, 95, 70, "Second appeal", "grader-2", "Rita Reviewer")

        assert exc_info.value.target == original.grade_id
        assert ledger.get_grade_history("learner-1", "module-1") == before
        assert ledger.get_current_grade("learner-1", "module-1") == corrected

    @pytest.mark.parametrize("reason", ["", "   "])
    def test_blank_reason_is_rejected(
        self, ledger: GradeLedger, grade_factory: t.Callable[..., GradeRecord], reason: str
    ) -> None:
        original = grade_factory(score=60)

        with pytest.raises(GradeValidationError):
            ledger.correct_grade(original.grade_id, 85, 70, reason, "grader-2", "Rita Reviewer")

        assert ledger.get_current_grade("learner-1", "module-1") == original

    def test_unknown_grade(self, ledger: GradeLedger) -> None:
        with pytest.raises(GradeNotFoundError):
            ledger.correct_grade(GradeID("learner-1_module-1_missing"), 85, 70, "Typo", "grader-1", "Grace Grader")

    def test_lost_race_is_retried_then_gives_up(
        self,
        monkeypatch: pytest.MonkeyPatch,
        ledger: GradeLedger,
        grade_factory: t.Callable[..., GradeRecord],
    ) -> None:
        """When another writer always wins the conditional update, the correction fails cleanly."""
        original = grade_factory(score=60)
        calls: list[GradeID] = []

        def lose_race(grade_id: GradeID, superseded_by: GradeID, session: Session) -> bool:
            calls.append(grade_id)
            return False

        monkeypatch.setattr(grade_storage, "supersede", lose_race)

        with pytest.raises(GradeConflictError):
            ledger.correct_grade(original.grade_id, 85, 70, "Appeal upheld", "grader-2", "Rita Reviewer")

        assert len(calls) == 3
        assert ledger.get_grade_history("learner-1", "module-1") == (original,)


class TestRunOptimistic(object):
    """Tests for correction.run_optimistic()."""

    def test_succeeds_after_contention(self, sessionmaker: sqlalchemy.orm.sessionmaker[Session]) -> None:
        attempts: list[int] = []

        def fn(session: Session) -> str:
            attempts.append(1)
            if len(attempts) < 3:
                raise correction.ContentionError("busy")
            return "done"

        assert correction.run_optimistic(sessionmaker, fn, target="learner-1_module-1", max_attempts=3) == "done"
        assert len(attempts) == 3

    def test_other_errors_propagate_immediately(self, sessionmaker: sqlalchemy.orm.sessionmaker[Session]) -> None:
        attempts: list[int] = []

        def fn(session: Session) -> None:
            attempts.append(1)
            raise GradeNotFoundError("learner-1_module-1_missing")

        with pytest.raises(GradeNotFoundError):
            correction.run_optimistic(sessionmaker, fn, target="learner-1_module-1", max_attempts=3)
        assert len(attempts) == 1


class TestEnterGradeFaults(object):
    """Storage faults during enter_grade are not mistaken for contention."""

    def test_not_null_violation_propagates_after_one_attempt(
        self, monkeypatch: pytest.MonkeyPatch, ledger: GradeLedger
    ) -> None:
        calls: list[GradeID] = []
        create = grade_storage.create

        def counting_create(params: grade_storage.GradeCreateParams, session: Session) -> GradeRecord:
            calls.append(params["grade_id"])
            return create(params, session=session)

        monkeypatch.setattr(grade_storage, "create", counting_create)

        with pytest.raises(sqlalchemy.exc.IntegrityError, match="NOT NULL"):
            ledger.enter_grade(
                "learner-1", "course-1", "module-1", 85, 70, "grader-1", None  # pyright: ignore[reportArgumentType]
            )

        assert len(calls) == 1
        assert ledger.get_current_grade("learner-1", "module-1") is None

    def test_conflict_names_the_pair(self, monkeypatch: pytest.MonkeyPatch, ledger: GradeLedger) -> None:
        def always_busy(*args: t.Any, **kwargs: t.Any) -> t.NoReturn:
            raise correction.ContentionError("busy")

        monkeypatch.setattr(grade_storage, "create", always_busy)

        with pytest.raises(GradeConflictError) as exc_info:
            ledger.enter_grade("learner-1", "course-1", "module-1", 85, 70, "grader-1", "Grace Grader")

        assert exc_info.value.target == "learner-1_module-1"
        assert not isinstance(exc_info.value.target, GradeID)


class PostgresError(Exception):
    """Stands in for a psycopg error: carries a sqlstate and diagnostics."""

    def __init__(self, sqlstate: str, constraint_name: str | None = None):
        super().__init__(f"sqlstate {sqlstate}")
        self.sqlstate = sqlstate
        self.diag = types.SimpleNamespace(constraint_name=constraint_name)


class TestIsContention(object):
    """Tests for correction.is_contention()."""

    def test_second_current_grade_on_sqlite(
        self, db_session: Session, grade_factory: t.Callable[..., GradeRecord]
    ) -> None:
        current = grade_factory()
        graded_at = current.graded_at + datetime.timedelta(seconds=1)

        with pytest.raises(sqlalchemy.exc.IntegrityError) as exc_info:
            with db_session.begin():
                grade_storage.create(
                    {
                        "grade_id": GradeID.generate(current.learner_id, current.module_id, graded_at),
                        "learner_id": current.learner_id,
                        "module_id": current.module_id,
                        "course_id": current.course_id,
                        "score": 90,
                        "passing_score": 70,
                        "passed": True,
                        "grader_id": "grader-2",
                        "grader_name": "Rita Reviewer",
                        "graded_at": graded_at,
                    },
                    session=db_session,
                )

        assert correction.is_contention(exc_info.value)

    def test_other_integrity_errors(self) -> None:
        for message in (
            "NOT NULL constraint failed: grades.grader_name",
            "UNIQUE constraint failed: grades.grade_id",
        ):
            exc = sqlalchemy.exc.IntegrityError("INSERT", {}, Exception(message))
            assert not correction.is_contention(exc), message

    def test_postgresql_unique_violation(self) -> None:
        current = sqlalchemy.exc.IntegrityError("INSERT", {}, PostgresError("23505", "grades_current_uq"))
        primary_key = sqlalchemy.exc.IntegrityError("INSERT", {}, PostgresError("23505", "grades_pkey"))
        not_null = sqlalchemy.exc.IntegrityError("INSERT", {}, PostgresError("23502"))

        assert correction.is_contention(current)
        assert not correction.is_contention(primary_key)
        assert not correction.is_contention(not_null)

    def test_postgresql_serialization_failure(self) -> None:
        exc = sqlalchemy.exc.OperationalError("UPDATE", {}, PostgresError("40001"))
        assert correction.is_contention(exc)

    def test_sqlite_lock(self) -> None:
        exc = sqlalchemy.exc.OperationalError("UPDATE", {}, Exception("database is locked"))
        assert correction.is_contention(exc)

    def test_unrelated_operational_error(self) -> None:
        exc = sqlalchemy.exc.OperationalError("SELECT", {}, Exception("no such table: grades"))
        assert not correction.is_contention(exc)
