"""Grading error hierarchy.

Storage faults are not wrapped; ``sqlalchemy.exc.SQLAlchemyError`` propagates
to the caller unchanged. Audit failures never surface as exceptions at all.
"""

from __future__ import annotations

from gradebook.model import GradeID


class GradingError(Exception):
    pass


class GradeValidationError(GradingError, ValueError):
    """Input that cannot be clamped into shape, e.g. a blank correction reason."""


class NoModulesError(GradeValidationError):
    def __init__(self, course_id: str):
        super().__init__(f"course {course_id!r} has no modules")
        self.course_id = course_id


class WeightPolicyError(GradingError):
    """Module weights do not sum to 100 where an official record is required."""

    def __init__(self, course_id: str, warning: str):
        super().__init__(f"refusing to save course grade for {course_id!r}: {warning}")
        self.course_id = course_id
        self.warning = warning


class GradeConflictError(GradingError):
    """The write lost to a concurrent change.

    `target` is the grade being corrected, or ``{learner_id}_{module_id}`` when
    a new grade for the pair could not be entered.
    """

    def __init__(self, target: GradeID | str, message: str):
        super().__init__(f"{message} ({target})")
        self.target = target


class GradeNotFoundError(GradingError, LookupError):
    def __init__(self, grade_id: GradeID | str):
        super().__init__(f"grade not found: {grade_id}")
        self.grade_id = grade_id


class TrustedCalculatorUnavailableError(GradingError):
    pass
