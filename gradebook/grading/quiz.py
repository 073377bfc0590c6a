"""Pure scoring for quiz questions. No storage, no audit.

Answers are matched to questions by position. Their shape depends on the
question kind: an option index for multiple-choice and true-false, a string
for fill-blank and short-answer, a list of right-hand values for matching.
"""

from __future__ import annotations

import typing as t

from gradebook.model import FillBlankQuestion, MatchingQuestion, MultipleChoiceQuestion, QuestionGradeResult, \
    QuizBlock, QuizGradeResult, QuizQuestion, ShortAnswerQuestion, TrueFalseQuestion

from .score import round_half_up

# short answers at least this long earn provisional credit pending review
SUBSTANTIVE_ANSWER_LENGTH = 20
DEFAULT_QUIZ_PASSING_SCORE = 80


def _is_index(answer: t.Any) -> t.TypeGuard[int]:
    return isinstance(answer, int) and not isinstance(answer, bool)


def _as_answer_list(answer: t.Any) -> list[t.Any]:
    return list(answer) if isinstance(answer, (list, tuple)) else []


def grade_question(question: QuizQuestion, answer: t.Any) -> QuestionGradeResult:
    needs_review = False
    match question:
        case MultipleChoiceQuestion() | TrueFalseQuestion():
            correct = _is_index(answer) and answer == question.correct_answer
            earned = question.points if correct else 0
        case FillBlankQuestion():
            given = answer if isinstance(answer, str) else ""
            correct = given.strip().lower() == question.correct_answer.strip().lower()
            earned = question.points if correct else 0
        case MatchingQuestion():
            pairs = question.matching_pairs
            answers = _as_answer_list(answer)
            correct = bool(pairs) and len(answers) == len(pairs) and all(
                pair.right == given for pair, given in zip(pairs, answers)
            )
            earned = question.points if correct else 0
        case ShortAnswerQuestion():
            # never auto-marked correct
            correct = False
            needs_review = True
            substantive = isinstance(answer, str) and len(answer) >= SUBSTANTIVE_ANSWER_LENGTH
            earned = question.points if substantive else 0
        case _:
            t.assert_never(question)

    return QuestionGradeResult(
        question_id=question.question_id,
        kind=question.kind,
        is_correct=correct,
        needs_manual_review=needs_review,
        earned_points=earned,
        max_points=question.points,
    )


def grade_quiz(questions: t.Sequence[QuizQuestion], answers: t.Sequence[t.Any], passing_score: int) -> QuizGradeResult:
    """Grade every question; missing answers are graded as None."""
    results = [grade_question(q, answers[i] if i < len(answers) else None) for i, q in enumerate(questions)]
    total = sum(r.max_points for r in results)
    earned = sum(r.earned_points for r in results)
    score = round_half_up(earned / total * 100) if total > 0 else 0
    return QuizGradeResult(
        score=score,
        passed=score >= passing_score,
        needs_review=any(r.needs_manual_review for r in results),
        results=results,
        total_points=total,
        earned_points=earned,
    )


def grade_quiz_block(
    block: QuizBlock, answers: t.Sequence[t.Any], fallback_passing_score: int = DEFAULT_QUIZ_PASSING_SCORE
) -> QuizGradeResult:
    passing_score = block.passing_score if block.passing_score is not None else fallback_passing_score
    return grade_quiz(block.questions, answers, passing_score)


def is_answer_complete(question: QuizQuestion, answer: t.Any) -> bool:
    """Whether `answer` is enough to submit, regardless of correctness."""
    match question:
        case MultipleChoiceQuestion() | TrueFalseQuestion():
            return answer is not None
        case FillBlankQuestion():
            return isinstance(answer, str) and bool(answer.strip())
        case MatchingQuestion():
            if not isinstance(answer, (list, tuple)):
                return False
            return len(answer) == len(question.matching_pairs) and all(
                isinstance(v, str) and v for v in answer
            )
        case ShortAnswerQuestion():
            return isinstance(answer, str) and len(answer) >= SUBSTANTIVE_ANSWER_LENGTH
        case _:
            t.assert_never(question)


def is_quiz_complete(questions: t.Sequence[QuizQuestion], answers: t.Sequence[t.Any]) -> bool:
    return all(is_answer_complete(q, answers[i] if i < len(answers) else None) for i, q in enumerate(questions))
