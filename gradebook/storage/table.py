import datetime
import typing as t

from sqlalchemy import Index, MetaData, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, MappedAsDataclass
from sqlalchemy.types import JSON

from gradebook.model import AuditLogID, GradeID

from .type import AuditLogIDType, GradeIDType, UTCDateTime

metadata = MetaData()

JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class base(MappedAsDataclass, DeclarativeBase):
    metadata = metadata
    type_annotation_map = {
        GradeID: GradeIDType(),
        AuditLogID: AuditLogIDType(),
        datetime.datetime: UTCDateTime(),
        dict[str, t.Any]: JSONDocument,
        list[dict[str, t.Any]]: JSONDocument,
    }


# Grades


class grades(base):
    """Append-only grade ledger.

    Rows are never deleted. The only permitted mutations are setting
    ``superseded_by`` once (NULL -> id) and flipping ``visible_to_student``.
    """

    __tablename__ = "grades"
    __table_args__ = (
        # at most one current record per (learner, module)
        Index(
            "grades_current_uq",
            "learner_id",
            "module_id",
            unique=True,
            postgresql_where=text("superseded_by IS NULL"),
            sqlite_where=text("superseded_by IS NULL"),
        ),
    )

    grade_id: Mapped[GradeID] = mapped_column(primary_key=True)
    learner_id: Mapped[str]
    module_id: Mapped[str]
    course_id: Mapped[str]

    score: Mapped[int]
    passing_score: Mapped[int]
    passed: Mapped[bool]

    grader_id: Mapped[str]
    grader_name: Mapped[str]
    graded_at: Mapped[datetime.datetime]
    notes: Mapped[str | None] = mapped_column(default=None)
    visible_to_student: Mapped[bool] = mapped_column(default=True)

    superseded_by: Mapped[GradeID | None] = mapped_column(default=None)
    correction_of: Mapped[GradeID | None] = mapped_column(default=None)
    correction_reason: Mapped[str | None] = mapped_column(default=None)


Index(
    "grades_learner_module_current_idx",
    grades.learner_id,
    grades.module_id,
    grades.superseded_by,
    grades.graded_at.desc(),
)
Index("grades_module_current_idx", grades.module_id, grades.superseded_by, grades.graded_at.desc())
Index("grades_learner_current_idx", grades.learner_id, grades.superseded_by, grades.graded_at.desc())


# Course Grade Snapshots


class course_grades(base):
    __tablename__ = "course_grades"

    # {learner_id}_{course_id}
    snapshot_id: Mapped[str] = mapped_column(primary_key=True)
    learner_id: Mapped[str] = mapped_column(index=True)
    course_id: Mapped[str] = mapped_column(index=True)

    overall_score: Mapped[int]
    overall_passed: Mapped[bool]
    total_critical_modules: Mapped[int]
    critical_modules_passed: Mapped[int]
    all_critical_modules_passed: Mapped[bool]
    module_breakdown: Mapped[list[dict[str, t.Any]]]
    total_modules: Mapped[int]
    graded_modules: Mapped[int]
    completion_percent: Mapped[int]
    is_complete: Mapped[bool]

    calculated_at: Mapped[datetime.datetime]
    update_time: Mapped[datetime.datetime]


# Audit Logs


class audit_logs(base):
    """Write-once audit trail. No update or delete path exists."""

    __tablename__ = "audit_logs"

    log_id: Mapped[AuditLogID] = mapped_column(primary_key=True)
    actor_id: Mapped[str] = mapped_column(index=True)
    actor_name: Mapped[str]
    action_type: Mapped[str] = mapped_column(index=True)
    target_id: Mapped[str] = mapped_column(index=True)
    details: Mapped[str]
    timestamp: Mapped[datetime.datetime] = mapped_column(index=True)
    # "metadata" is reserved on declarative classes
    extra: Mapped[dict[str, t.Any] | None] = mapped_column("metadata", default=None)
