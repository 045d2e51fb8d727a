"""Attempt bookkeeping models: access marker, graded results and answer logs."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DECIMAL, JSON, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.base import CreatedAtMixin, ExamStudentMixin, IDMixin, TimestampMixin, utcnow

# Submission mode that finalizes an attempt. Any other value is a draft save.
SUBMITTED = "submitted"
# Access marker written when a student opens an exam.
IN_PROGRESS = "in_progress"


class ExamAccess(Base, IDMixin, TimestampMixin, ExamStudentMixin):
    """Per (exam, student) marker of the attempt lifecycle."""

    __tablename__ = "exam_access"

    # Literal submission mode last received, or IN_PROGRESS
    attempted: Mapped[str | None] = mapped_column(String(50), nullable=True)

    __table_args__ = (
        UniqueConstraint("exam_id", "user_id", name="uq_exam_access_user"),
    )

    def __repr__(self) -> str:
        return f"<ExamAccess(exam_id={self.exam_id}, user_id={self.user_id}, attempted={self.attempted})>"


class ExamResult(Base, IDMixin, ExamStudentMixin):
    """Graded result of a final submission. Several rows may exist per pair."""

    __tablename__ = "result"

    correct: Mapped[int] = mapped_column(Integer, nullable=False)
    incorrect: Mapped[int] = mapped_column(Integer, nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    percentage: Mapped[Decimal] = mapped_column(DECIMAL(5, 2), nullable=False)
    time_taken: Mapped[int | None] = mapped_column(Integer, nullable=True)  # seconds
    attempted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<ExamResult(id={self.id}, exam_id={self.exam_id}, user_id={self.user_id}, score={self.score})>"


class UserAttempt(Base, IDMixin, CreatedAtMixin, ExamStudentMixin):
    """Append-only log of submitted answers, final or draft."""

    __tablename__ = "user_attempt"

    # {question_id: {"selectedOption": ..., "correct": bool, "savedAt": iso}}
    answers: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    def __repr__(self) -> str:
        return f"<UserAttempt(id={self.id}, exam_id={self.exam_id}, user_id={self.user_id})>"
