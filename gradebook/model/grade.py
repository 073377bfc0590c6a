import datetime
import typing as t

import annotated_types as ant
import pydantic as p

from .base import BaseModel
from .id import GradeID

Score = t.Annotated[int, ant.Ge(0), ant.Le(100)]


class GradeRecord(BaseModel):
    grade_id: GradeID
    learner_id: str
    module_id: str
    course_id: str

    score: Score
    passing_score: int
    passed: bool

    grader_id: str
    grader_name: str
    graded_at: datetime.datetime
    notes: str | None = None
    visible_to_student: bool = True

    superseded_by: GradeID | None = None
    correction_of: GradeID | None = None
    correction_reason: str | None = None

    @p.model_validator(mode="after")
    def check_correction_reason(self) -> t.Self:
        if self.correction_of is not None and not (self.correction_reason or "").strip():
            raise ValueError("correction_reason is required when correction_of is set")
        return self

    @property
    def is_current(self) -> bool:
        return self.superseded_by is None
