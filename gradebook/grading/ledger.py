"""Append-only grade ledger.

Each (learner, module) pair has at most one current grade, the record whose
``superseded_by`` is unset. Re-grading and corrections never delete or
rewrite a record; they retire it by pointing ``superseded_by`` at its
successor.
"""

from __future__ import annotations

import logging

import sqlalchemy.orm

from gradebook.core.config import GradingSettings
from gradebook.core.provider import TimestampProvider
from gradebook.model import AuditActionType, GradeID, GradeRecord
from gradebook.storage import grade as grade_storage

from . import competency
from .audit import AuditTrail
from .correction import ContentionError, correct_grade, run_optimistic
from .errors import GradeNotFoundError
from .score import clamp_score

logger = logging.getLogger(__name__)


class GradeLedger(object):
    def __init__(
        self,
        sessionmaker: sqlalchemy.orm.sessionmaker[sqlalchemy.orm.Session],
        audit: AuditTrail,
        clock: TimestampProvider,
        settings: GradingSettings,
    ):
        self._sessionmaker = sessionmaker
        self._audit = audit
        self._clock = clock
        self._settings = settings

    def enter_grade(
        self,
        learner_id: str,
        course_id: str,
        module_id: str,
        score: float,
        passing_score: int | None,
        grader_id: str,
        grader_name: str,
        notes: str | None = None,
    ) -> GradeRecord:
        """Record a new current grade for the pair.

        An existing current grade is superseded by the new one in the same
        transaction (a re-grade, not a correction: ``correction_of`` stays
        unset).
        """
        score = clamp_score(score)
        if passing_score is None:
            passing_score = self._settings.default_passing_score
        passed = score >= passing_score

        def attempt(session: sqlalchemy.orm.Session) -> GradeRecord:
            graded_at = self._clock()
            grade_id = GradeID.generate(learner_id, module_id, graded_at)
            for prior in grade_storage.find_current(learner_id=learner_id, module_id=module_id, session=session):
                if not grade_storage.supersede(prior.grade_id, grade_id, session=session):
                    raise ContentionError(prior.grade_id)
            return grade_storage.create(
                {
                    "grade_id": grade_id,
                    "learner_id": learner_id,
                    "module_id": module_id,
                    "course_id": course_id,
                    "score": score,
                    "passing_score": passing_score,
                    "passed": passed,
                    "grader_id": grader_id,
                    "grader_name": grader_name,
                    "graded_at": graded_at,
                    "notes": notes,
                },
                session=session,
            )

        record = run_optimistic(
            self._sessionmaker,
            attempt,
            target=f"{learner_id}_{module_id}",
            max_attempts=self._settings.correction.max_attempts,
        )
        logger.info(
            "grade entered",
            extra={
                "grade_id": record.grade_id,
                "learner_id": learner_id,
                "module_id": module_id,
                "score": score,
                "passed": passed,
            },
        )

        details = (
            f"Entered grade: {score}% ({'PASSED' if passed else 'FAILED'}) for user {learner_id} on module {module_id}"
        )
        if notes:
            details += f" - Notes: {notes}"
        self._audit.emit(grader_id, grader_name, AuditActionType.GradeEntry, record.grade_id, details)
        return record

    def correct_grade(
        self,
        original_grade_id: GradeID,
        new_score: float,
        passing_score: int,
        correction_reason: str,
        grader_id: str,
        grader_name: str,
        notes: str | None = None,
    ) -> GradeRecord:
        return correct_grade(
            original_grade_id,
            new_score,
            passing_score,
            correction_reason,
            grader_id,
            grader_name,
            notes,
            sessionmaker=self._sessionmaker,
            audit=self._audit,
            clock=self._clock,
            max_attempts=self._settings.correction.max_attempts,
        )

    def get_grade(self, grade_id: GradeID) -> GradeRecord | None:
        with self._sessionmaker() as session, session.begin():
            return grade_storage.get(grade_id, session=session)

    def get_current_grade(self, learner_id: str, module_id: str) -> GradeRecord | None:
        with self._sessionmaker() as session, session.begin():
            current = grade_storage.find_current(learner_id=learner_id, module_id=module_id, limit=2, session=session)

        if not current:
            return None
        if len(current) > 1:
            # the newest wins, but this should be impossible
            logger.error(
                "multiple current grades for learner and module",
                extra={
                    "learner_id": learner_id,
                    "module_id": module_id,
                    "grade_ids": [g.grade_id for g in current],
                },
            )
        return current[0]

    def get_grade_history(self, learner_id: str, module_id: str) -> tuple[GradeRecord, ...]:
        with self._sessionmaker() as session, session.begin():
            return grade_storage.history(learner_id, module_id, session=session)

    def get_user_grades(self, learner_id: str) -> tuple[GradeRecord, ...]:
        with self._sessionmaker() as session, session.begin():
            return grade_storage.find_current(learner_id=learner_id, session=session)

    def get_module_grades(self, module_id: str) -> tuple[GradeRecord, ...]:
        with self._sessionmaker() as session, session.begin():
            return grade_storage.find_current(module_id=module_id, session=session)

    def set_grade_visibility(self, grade_id: GradeID, visible: bool, actor_id: str, actor_name: str) -> GradeRecord:
        with self._sessionmaker() as session, session.begin():
            record = grade_storage.set_visibility(grade_id, visible, session=session)
        if record is None:
            raise GradeNotFoundError(grade_id)

        logger.info("grade visibility changed", extra={"grade_id": grade_id, "visible": visible})
        self._audit.emit(
            actor_id,
            actor_name,
            AuditActionType.GradeChange,
            grade_id,
            f"Grade visibility set to: {'visible' if visible else 'hidden'}",
        )
        return record

    def get_competency_summary(self, learner_id: str) -> competency.CompetencySummary:
        return competency.summarize(self.get_user_grades(learner_id))
