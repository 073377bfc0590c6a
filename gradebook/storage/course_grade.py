"""Storage functions for persisted course grade snapshots."""

from __future__ import annotations

import datetime
import typing as t

import sqlalchemy as sqla
from sqlalchemy.dialects import postgresql, sqlite

from gradebook.core import di
from gradebook.model import CourseGrade, CourseGradeSnapshot

from . import Session
from .table import course_grades


def snapshot_key(learner_id: str, course_id: str) -> str:
    return f"{learner_id}_{course_id}"


def get(
    learner_id: str,
    course_id: str,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> CourseGradeSnapshot | None:
    stmt = sqla.select(course_grades.__table__).where(
        course_grades.snapshot_id == snapshot_key(learner_id, course_id)
    )
    row = session.execute(stmt).mappings().one_or_none()
    return CourseGradeSnapshot(**row) if row else None


def find(
    *,
    learner_id: str | None = None,
    course_id: str | None = None,
    order_by: t.Literal["overall_score", "calculated_at"] = "calculated_at",
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[CourseGradeSnapshot, ...]:
    """Find snapshots for a learner, a course, or both. Ordering is always descending."""
    stmt = sqla.select(course_grades.__table__)
    if learner_id is not None:
        stmt = stmt.where(course_grades.learner_id == learner_id)
    if course_id is not None:
        stmt = stmt.where(course_grades.course_id == course_id)

    match order_by:
        case "overall_score":
            stmt = stmt.order_by(course_grades.overall_score.desc(), course_grades.learner_id)
        case "calculated_at":
            stmt = stmt.order_by(course_grades.calculated_at.desc(), course_grades.course_id)

    rows = session.execute(stmt).mappings().all()
    return tuple(CourseGradeSnapshot(**row) for row in rows)


def upsert(
    grade: CourseGrade,
    *,
    update_time: datetime.datetime,
    session: Session = di.Provide["storage.persistent.session"],
) -> CourseGradeSnapshot:
    """Create or replace the snapshot for the grade's learner and course in one statement."""
    values = grade.model_dump(mode="python", include=set(CourseGrade.model_fields))
    values["module_breakdown"] = [m.model_dump(mode="json") for m in grade.module_breakdown]
    values["snapshot_id"] = snapshot_key(grade.learner_id, grade.course_id)
    values["update_time"] = update_time

    match session.get_bind().dialect.name:
        case "postgresql":
            stmt = postgresql.insert(course_grades).values(**values)
        case "sqlite":
            stmt = sqlite.insert(course_grades).values(**values)
        case dialect:
            raise ValueError(f"upsert is not supported on {dialect}")

    stmt = stmt.on_conflict_do_update(
        index_elements=["snapshot_id"],
        set_={k: getattr(stmt.excluded, k) for k in values if k != "snapshot_id"},
    )
    session.execute(stmt)
    session.flush()
    result = get(grade.learner_id, grade.course_id, session=session)
    assert result is not None
    return result
