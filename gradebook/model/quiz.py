import typing as t

import pydantic as p

from .base import BaseModel


QuestionKind = t.Literal["multiple-choice", "true-false", "fill-blank", "matching", "short-answer"]


class MatchingPair(BaseModel):
    left: str
    right: str


class BaseQuestion(BaseModel):
    question_id: str
    question: str = ""
    points: int = 1


class MultipleChoiceQuestion(BaseQuestion):
    kind: t.Literal["multiple-choice"] = "multiple-choice"
    options: list[str] = []
    correct_answer: int


class TrueFalseQuestion(BaseQuestion):
    # 0 = True, 1 = False
    kind: t.Literal["true-false"] = "true-false"
    correct_answer: int


class FillBlankQuestion(BaseQuestion):
    kind: t.Literal["fill-blank"] = "fill-blank"
    correct_answer: str


class MatchingQuestion(BaseQuestion):
    kind: t.Literal["matching"] = "matching"
    matching_pairs: list[MatchingPair] = []


class ShortAnswerQuestion(BaseQuestion):
    kind: t.Literal["short-answer"] = "short-answer"


QuizQuestion = t.Annotated[
    MultipleChoiceQuestion | TrueFalseQuestion | FillBlankQuestion | MatchingQuestion | ShortAnswerQuestion,
    p.Field(discriminator="kind"),
]


class QuizBlock(BaseModel):
    title: str = ""
    questions: list[QuizQuestion] = []
    passing_score: int | None = None


class QuestionGradeResult(BaseModel):
    question_id: str
    kind: QuestionKind
    is_correct: bool
    needs_manual_review: bool
    earned_points: int
    max_points: int


class QuizGradeResult(BaseModel):
    score: int
    passed: bool
    needs_review: bool
    results: list[QuestionGradeResult]
    total_points: int
    earned_points: int
