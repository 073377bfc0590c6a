import datetime
import typing as t

import annotated_types as ant

from .base import BaseModel, WithMtime

Weight = t.Annotated[float, ant.Ge(0), ant.Le(100)]


class Module(BaseModel):
    """A course module as published by the course catalog. Read-only here."""

    module_id: str
    course_id: str
    title: str = ""
    weight: Weight = 0
    is_critical: bool = False
    passing_score: int = 70


class ModuleScore(BaseModel):  # Not timestamped, embedded in CourseGrade
    module_id: str
    module_title: str
    score: int | None
    weight: float
    weighted_score: float | None
    is_critical: bool
    passed: bool | None
    passing_score: int


class CourseGrade(BaseModel):
    learner_id: str
    course_id: str

    overall_score: int
    overall_passed: bool

    total_critical_modules: int
    critical_modules_passed: int
    all_critical_modules_passed: bool

    module_breakdown: list[ModuleScore] = []

    total_modules: int
    graded_modules: int
    completion_percent: int
    is_complete: bool

    calculated_at: datetime.datetime


class CourseGradeCalculation(CourseGrade):
    weight_warning: str | None = None


class CourseGradeSnapshot(CourseGrade, WithMtime):
    snapshot_id: str


class TrustedCourseGrade(BaseModel):
    overall_score: int
    overall_passed: bool
    calculated_at: datetime.datetime
