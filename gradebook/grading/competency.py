from __future__ import annotations

import enum
import typing as t

from gradebook.model import BaseModel, GradeRecord

from .score import round_half_up


class CompetencyLevel(enum.Enum):
    Mastery = "mastery"
    Competent = "competent"
    Developing = "developing"
    NotCompetent = "not_competent"


def calculate_competency(score: int) -> CompetencyLevel:
    if score >= 95:
        return CompetencyLevel.Mastery
    if score >= 80:
        return CompetencyLevel.Competent
    if score >= 60:
        return CompetencyLevel.Developing
    return CompetencyLevel.NotCompetent


class CompetencySummary(BaseModel):
    total_graded: int
    passed: int
    failed: int
    average_score: int
    by_level: dict[CompetencyLevel, int]


def summarize(grades: t.Iterable[GradeRecord]) -> CompetencySummary:
    grades = list(grades)
    by_level = {level: 0 for level in CompetencyLevel}
    for g in grades:
        by_level[calculate_competency(g.score)] += 1

    passed = sum(1 for g in grades if g.passed)
    average = round_half_up(sum(g.score for g in grades) / len(grades)) if grades else 0
    return CompetencySummary(
        total_graded=len(grades),
        passed=passed,
        failed=len(grades) - passed,
        average_score=average,
        by_level=by_level,
    )
