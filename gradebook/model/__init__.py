__all__ = [
    # Base
    "BaseModel",
    "WithMtime",
    # Enums
    "DeploymentEnvironment",
    # ID Types
    "AuditLogID",
    "GradeID",
    # Grades
    "GradeRecord",
    "Score",
    # Courses
    "CourseGrade",
    "CourseGradeCalculation",
    "CourseGradeSnapshot",
    "Module",
    "ModuleScore",
    "TrustedCourseGrade",
    # Audit
    "AuditActionType",
    "AuditLogEntry",
    # Quizzes
    "FillBlankQuestion",
    "MatchingPair",
    "MatchingQuestion",
    "MultipleChoiceQuestion",
    "QuestionGradeResult",
    "QuestionKind",
    "QuizBlock",
    "QuizGradeResult",
    "QuizQuestion",
    "ShortAnswerQuestion",
    "TrueFalseQuestion",
]

from .audit import AuditActionType, AuditLogEntry
from .base import BaseModel, WithMtime
from .course import CourseGrade, CourseGradeCalculation, CourseGradeSnapshot, Module, ModuleScore, TrustedCourseGrade
from .enum import DeploymentEnvironment
from .grade import GradeRecord, Score
from .id import AuditLogID, GradeID
from .quiz import FillBlankQuestion, MatchingPair, MatchingQuestion, MultipleChoiceQuestion, QuestionGradeResult, \
    QuestionKind, QuizBlock, QuizGradeResult, QuizQuestion, ShortAnswerQuestion, TrueFalseQuestion
