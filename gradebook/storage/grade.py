from __future__ import annotations

import datetime
import typing as t

import sqlalchemy as sqla

from gradebook.core import di
from gradebook.model import GradeID, GradeRecord

from . import Session
from .table import grades

# newest first; within one timestamp the current grade leads, and the order
# among superseded grades of that timestamp is arbitrary but stable
_newest_first = (
    grades.graded_at.desc(),
    sqla.case((grades.superseded_by.is_(None), 0), else_=1),
    grades.grade_id.desc(),
)


def get(grade_id: GradeID, session: Session = di.Provide["storage.persistent.session"]) -> GradeRecord | None:
    stmt = sqla.select(grades.__table__).where(grades.grade_id == grade_id)
    row = session.execute(stmt).mappings().one_or_none()
    return GradeRecord(**row) if row else None


def find_current(
    *,
    learner_id: str | None = None,
    module_id: str | None = None,
    limit: int | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[GradeRecord, ...]:
    """Find grades that have not been superseded, newest first."""
    stmt = sqla.select(grades.__table__).where(grades.superseded_by.is_(None)).order_by(*_newest_first)
    if learner_id is not None:
        stmt = stmt.where(grades.learner_id == learner_id)
    if module_id is not None:
        stmt = stmt.where(grades.module_id == module_id)
    if limit is not None:
        stmt = stmt.limit(limit)
    rows = session.execute(stmt).mappings().all()
    return tuple(GradeRecord(**row) for row in rows)


def history(
    learner_id: str,
    module_id: str,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[GradeRecord, ...]:
    """Every grade ever recorded for the pair, superseded included, newest first."""
    stmt = (
        sqla
        .select(grades.__table__)
        .where(grades.learner_id == learner_id, grades.module_id == module_id)
        .order_by(*_newest_first)
    )
    rows = session.execute(stmt).mappings().all()
    return tuple(GradeRecord(**row) for row in rows)


def create(params: GradeCreateParams, session: Session = di.Provide["storage.persistent.session"]) -> GradeRecord:
    stmt = sqla.insert(grades).values(
        grade_id=params["grade_id"],
        learner_id=params["learner_id"],
        module_id=params["module_id"],
        course_id=params["course_id"],
        score=params["score"],
        passing_score=params["passing_score"],
        passed=params["passed"],
        grader_id=params["grader_id"],
        grader_name=params["grader_name"],
        graded_at=params["graded_at"],
        notes=params.get("notes"),
        visible_to_student=params.get("visible_to_student", True),
        superseded_by=None,
        correction_of=params.get("correction_of"),
        correction_reason=params.get("correction_reason"),
    )
    session.execute(stmt)
    session.flush()
    result = get(params["grade_id"], session=session)
    assert result is not None
    return result


def supersede(
    grade_id: GradeID,
    superseded_by: GradeID,
    session: Session = di.Provide["storage.persistent.session"],
) -> bool:
    """Mark a current grade as replaced by `superseded_by`.

    The write is conditional on the grade still being current, which makes it
    the version check for optimistic transactions.

    Returns:
        True if the grade was current and is now superseded, False otherwise
    """
    stmt = (
        sqla
        .update(grades)
        .where(grades.grade_id == grade_id, grades.superseded_by.is_(None))
        .values(superseded_by=superseded_by)
    )
    result = session.execute(stmt)
    return result.rowcount == 1  # pyright: ignore[reportAttributeAccessIssue]


def set_visibility(
    grade_id: GradeID,
    visible: bool,
    session: Session = di.Provide["storage.persistent.session"],
) -> GradeRecord | None:
    stmt = sqla.update(grades).where(grades.grade_id == grade_id).values(visible_to_student=visible)
    result = session.execute(stmt)
    if not result.rowcount:  # pyright: ignore[reportAttributeAccessIssue]
        return None
    return get(grade_id, session=session)


class GradeCreateParams(t.TypedDict, total=False):
    grade_id: t.Required[GradeID]
    learner_id: t.Required[str]
    module_id: t.Required[str]
    course_id: t.Required[str]
    score: t.Required[int]
    passing_score: t.Required[int]
    passed: t.Required[bool]
    grader_id: t.Required[str]
    grader_name: t.Required[str]
    graded_at: t.Required[datetime.datetime]
    notes: str | None
    visible_to_student: bool
    correction_of: GradeID | None
    correction_reason: str | None
