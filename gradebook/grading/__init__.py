__all__ = [
    # Services
    "AuditTrail",
    "CourseGradeAggregator",
    "GradeLedger",
    # Collaborators
    "ModuleCatalog",
    "StaticModuleCatalog",
    "TrustedCourseGradeCalculator",
    # Errors
    "GradeConflictError",
    "GradeNotFoundError",
    "GradeValidationError",
    "GradingError",
    "NoModulesError",
    "TrustedCalculatorUnavailableError",
    "WeightPolicyError",
    # Helpers
    "CompetencyLevel",
    "calculate_competency",
    "clamp_score",
    "round_half_up",
]

from .aggregator import CourseGradeAggregator, TrustedCourseGradeCalculator
from .audit import AuditTrail
from .catalog import ModuleCatalog, StaticModuleCatalog
from .competency import calculate_competency, CompetencyLevel
from .errors import GradeConflictError, GradeNotFoundError, GradeValidationError, GradingError, NoModulesError, \
    TrustedCalculatorUnavailableError, WeightPolicyError
from .ledger import GradeLedger
from .score import clamp_score, round_half_up
