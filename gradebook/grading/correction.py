"""Grade correction as a two-write optimistic transaction.

A correction retires the current grade (``superseded_by`` set) and installs
its replacement (``correction_of`` set) in one database transaction. The
retire step is a conditional UPDATE that only matches a still-current row, so
a concurrent writer that got there first makes it affect zero rows; the whole
read-compute-write closure is then rolled back and retried.
"""

from __future__ import annotations

import logging
import typing as t

import sqlalchemy.exc
import sqlalchemy.orm

from gradebook.core.provider import TimestampProvider
from gradebook.model import AuditActionType, GradeID, GradeRecord
from gradebook.storage import grade as grade_storage

from .audit import AuditTrail
from .errors import GradeConflictError, GradeNotFoundError, GradeValidationError
from .score import clamp_score

logger = logging.getLogger(__name__)

T = t.TypeVar("T")

# serialization_failure, deadlock_detected
_RETRYABLE_SQLSTATES = {"40001", "40P01"}
_UNIQUE_VIOLATION = "23505"

# a second current grade for the pair; any other integrity failure is a real fault
_CURRENT_GRADE_INDEX = "grades_current_uq"
_SQLITE_CURRENT_GRADE_VIOLATION = "UNIQUE constraint failed: grades.learner_id, grades.module_id"


class ContentionError(Exception):
    """A conditional write matched no rows because another writer got there first."""


def is_current_grade_violation(exc: sqlalchemy.exc.IntegrityError) -> bool:
    if getattr(exc.orig, "sqlstate", None) == _UNIQUE_VIOLATION:
        diag = getattr(exc.orig, "diag", None)
        return getattr(diag, "constraint_name", None) == _CURRENT_GRADE_INDEX
    return _SQLITE_CURRENT_GRADE_VIOLATION in str(exc.orig)


def is_contention(exc: sqlalchemy.exc.DBAPIError) -> bool:
    if isinstance(exc, sqlalchemy.exc.IntegrityError):
        return is_current_grade_violation(exc)
    if isinstance(exc, sqlalchemy.exc.OperationalError):
        sqlstate = getattr(exc.orig, "sqlstate", None)
        return sqlstate in _RETRYABLE_SQLSTATES or "database is locked" in str(exc.orig)
    return False


def run_optimistic(
    sessionmaker: sqlalchemy.orm.sessionmaker[sqlalchemy.orm.Session],
    fn: t.Callable[[sqlalchemy.orm.Session], T],
    *,
    target: GradeID | str,
    max_attempts: int,
) -> T:
    """Run `fn` in a fresh transaction, retrying the whole unit on contention.

    Raises:
        GradeConflictError: every attempt lost to a concurrent writer
    """
    last: Exception | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            with sessionmaker() as session, session.begin():
                return fn(session)
        except ContentionError as e:
            last = e
        except sqlalchemy.exc.DBAPIError as e:
            if not is_contention(e):
                raise
            last = e
        logger.warning(
            "transaction lost to a concurrent writer",
            extra={"target": target, "attempt": attempt, "max_attempts": max_attempts, "error": repr(last)},
        )
    raise GradeConflictError(
        target, f"gave up after {max_attempts} attempts due to concurrent modification"
    ) from last


def correct_grade(
    original_grade_id: GradeID,
    new_score: float,
    passing_score: int,
    correction_reason: str,
    grader_id: str,
    grader_name: str,
    notes: str | None = None,
    *,
    sessionmaker: sqlalchemy.orm.sessionmaker[sqlalchemy.orm.Session],
    audit: AuditTrail,
    clock: TimestampProvider,
    max_attempts: int = 3,
) -> GradeRecord:
    if not correction_reason or not correction_reason.strip():
        raise GradeValidationError("a correction reason is required")
    score = clamp_score(new_score)
    passed = score >= passing_score

    def attempt(session: sqlalchemy.orm.Session) -> GradeRecord:
        original = grade_storage.get(original_grade_id, session=session)
        if original is None:
            raise GradeNotFoundError(original_grade_id)
        if original.superseded_by is not None:
            raise GradeConflictError(
                original_grade_id, "cannot correct a superseded grade, correct the current grade instead"
            )

        graded_at = clock()
        grade_id = GradeID.generate(original.learner_id, original.module_id, graded_at)
        # retire first: the unique index allows only one current grade per pair
        if not grade_storage.supersede(original.grade_id, grade_id, session=session):
            raise ContentionError(original.grade_id)
        return grade_storage.create(
            {
                "grade_id": grade_id,
                "learner_id": original.learner_id,
                "module_id": original.module_id,
                "course_id": original.course_id,
                "score": score,
                "passing_score": passing_score,
                "passed": passed,
                "grader_id": grader_id,
                "grader_name": grader_name,
                "graded_at": graded_at,
                "notes": notes,
                "correction_of": original.grade_id,
                "correction_reason": correction_reason,
            },
            session=session,
        )

    corrected = run_optimistic(sessionmaker, attempt, target=original_grade_id, max_attempts=max_attempts)
    logger.info(
        "grade corrected",
        extra={
            "grade_id": corrected.grade_id,
            "correction_of": original_grade_id,
            "learner_id": corrected.learner_id,
            "module_id": corrected.module_id,
            "score": corrected.score,
        },
    )

    # after commit and outside the unit: an audit failure never undoes the correction
    audit.emit(
        grader_id,
        grader_name,
        AuditActionType.GradeChange,
        corrected.grade_id,
        f"Grade correction: {original_grade_id} -> {score}% for user {corrected.learner_id}. "
        f"Reason: {correction_reason}",
        metadata={"correction_of": original_grade_id, "score": score, "passed": passed},
    )
    return corrected
