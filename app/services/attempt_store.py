"""Persistence façade over the access, result and attempt log tables."""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.attempt import ExamAccess, ExamResult, UserAttempt
from app.models.base import utcnow
from app.models.exam import Exam, Question
from app.services.scoring import AnswerKey, ScoreResult

logger = logging.getLogger(__name__)


class AttemptRecordStore:
    """
    Reads and writes for the records a submission touches.

    Every write runs inside its own SAVEPOINT, so a failed write rolls back
    only itself and leaves the surrounding session usable. The three writes
    of a submission are deliberately not one atomic unit.
    """

    def __init__(self, db: Session):
        self.db = db

    # ==========================================
    # Exam metadata
    # ==========================================

    def get_exam(self, exam_id: int) -> Exam | None:
        result = self.db.execute(select(Exam).where(Exam.exam_id == exam_id))
        return result.scalar_one_or_none()

    def get_exam_questions(self, exam_id: int) -> list[Question]:
        result = self.db.execute(
            select(Question)
            .where(Question.exam_id == exam_id)
            .order_by(Question.question_id)
        )
        return list(result.scalars().all())

    def get_answer_keys(self, exam_id: int) -> list[AnswerKey]:
        return [
            AnswerKey(question_id=q.question_id, correct=q.correct)
            for q in self.get_exam_questions(exam_id)
        ]

    # ==========================================
    # Results
    # ==========================================

    def insert_result(
        self,
        exam_id: int,
        user_id: int,
        score: ScoreResult,
        time_taken: int | None,
        attempted_at: datetime | None = None,
    ) -> ExamResult:
        record = ExamResult(
            exam_id=exam_id,
            user_id=user_id,
            correct=score.correct_count,
            incorrect=score.incorrect_count,
            score=score.score,
            percentage=score.percentage,
            time_taken=time_taken,
            attempted_at=attempted_at or utcnow(),
        )
        with self.db.begin_nested():
            self.db.add(record)
        return record

    def get_result(self, result_id: int) -> ExamResult | None:
        result = self.db.execute(select(ExamResult).where(ExamResult.id == result_id))
        return result.scalar_one_or_none()

    def get_latest_result(self, exam_id: int, user_id: int) -> ExamResult | None:
        """Most recent result by attempted_at, newest insert winning ties."""
        result = self.db.execute(
            select(ExamResult)
            .where(
                ExamResult.exam_id == exam_id,
                ExamResult.user_id == user_id,
            )
            .order_by(ExamResult.attempted_at.desc(), ExamResult.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    # ==========================================
    # Access marker
    # ==========================================

    def get_access(self, exam_id: int, user_id: int) -> ExamAccess | None:
        result = self.db.execute(
            select(ExamAccess).where(
                ExamAccess.exam_id == exam_id,
                ExamAccess.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    def mark_access(self, exam_id: int, user_id: int, attempted: str | None) -> ExamAccess:
        """Insert or update the access marker for the pair."""
        with self.db.begin_nested():
            access = self.get_access(exam_id, user_id)
            if access is None:
                access = ExamAccess(exam_id=exam_id, user_id=user_id, attempted=attempted)
                self.db.add(access)
            else:
                access.attempted = attempted
        return access

    # ==========================================
    # Attempt log
    # ==========================================

    def append_attempt_log(self, exam_id: int, user_id: int, answers: dict) -> UserAttempt:
        log = UserAttempt(exam_id=exam_id, user_id=user_id, answers=answers)
        with self.db.begin_nested():
            self.db.add(log)
        return log

    def get_latest_attempt_log(self, exam_id: int, user_id: int) -> UserAttempt | None:
        result = self.db.execute(
            select(UserAttempt)
            .where(
                UserAttempt.exam_id == exam_id,
                UserAttempt.user_id == user_id,
            )
            .order_by(UserAttempt.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()
