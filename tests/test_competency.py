"""Tests for gradebook.grading.competency module."""

from __future__ import annotations

import datetime

import pytest

from gradebook.grading import calculate_competency, CompetencyLevel
from gradebook.grading.competency import summarize
from gradebook.model import GradeID, GradeRecord

T0 = datetime.datetime(2025, 3, 1, 12, 0, tzinfo=datetime.UTC)


def make_record(module_id: str, score: int, passing_score: int = 70) -> GradeRecord:
    return GradeRecord(
        grade_id=GradeID.generate("learner-1", module_id, T0),
        learner_id="learner-1",
        module_id=module_id,
        course_id="course-1",
        score=score,
        passing_score=passing_score,
        passed=score >= passing_score,
        grader_id="grader-1",
        grader_name="Grace Grader",
        graded_at=T0,
    )


class TestCalculateCompetency(object):
    @pytest.mark.parametrize(
        ("score", "level"),
        [
            (100, CompetencyLevel.Mastery),
            (95, CompetencyLevel.Mastery),
            (94, CompetencyLevel.Competent),
            (80, CompetencyLevel.Competent),
            (79, CompetencyLevel.Developing),
            (60, CompetencyLevel.Developing),
            (59, CompetencyLevel.NotCompetent),
            (0, CompetencyLevel.NotCompetent),
        ],
    )
    def test_thresholds(self, score: int, level: CompetencyLevel) -> None:
        assert calculate_competency(score) is level


class TestSummarize(object):
    def test_empty(self) -> None:
        summary = summarize([])

        assert summary.total_graded == 0
        assert summary.average_score == 0
        assert set(summary.by_level.values()) == {0}

    def test_counts_and_average(self) -> None:
        summary = summarize([make_record("m1", 85), make_record("m2", 84), make_record("m3", 50, passing_score=40)])

        assert summary.total_graded == 3
        assert summary.passed == 3
        assert summary.average_score == 73
        assert summary.by_level[CompetencyLevel.Competent] == 2
        assert summary.by_level[CompetencyLevel.NotCompetent] == 1

    def test_half_up_average(self) -> None:
        """(85 + 84) / 2 = 84.5 rounds up to 85."""
        summary = summarize([make_record("m1", 85), make_record("m2", 84)])

        assert summary.average_score == 85
