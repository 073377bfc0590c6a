import math

from .errors import GradeValidationError


def round_half_up(x: float) -> int:
    """Round to the nearest integer with halves going up.

    The builtin `round` rounds halves to even, which would turn 84.5 into 84.
    """
    return math.floor(x + 0.5)


def clamp_score(score: float) -> int:
    """Round then clamp a raw score into [0, 100]."""
    if isinstance(score, bool) or not math.isfinite(score):
        raise GradeValidationError(f"score must be a finite number, got {score!r}")
    return max(0, min(100, round_half_up(score)))
