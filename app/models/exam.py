"""Exam and question models."""

from datetime import date
from decimal import Decimal

from sqlalchemy import DECIMAL, JSON, BigInteger, Date, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.base import BigIntPK, TimestampMixin


class Exam(Base, TimestampMixin):
    """Exam metadata. Created and edited by the content admin service."""

    __tablename__ = "exam"

    exam_id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    subject_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    fees: Mapped[Decimal | None] = mapped_column(DECIMAL(10, 2), nullable=True)
    num_of_ques: Mapped[int | None] = mapped_column(Integer, nullable=True)
    type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)  # minutes
    ques_mark: Mapped[int | None] = mapped_column(Integer, nullable=True)
    certificate_bg: Mapped[str | None] = mapped_column(Text, nullable=True)

    questions: Mapped[list["Question"]] = relationship(
        "Question",
        back_populates="exam",
        order_by="Question.question_id",
        lazy="selectin",
    )

    @property
    def mark_per_question(self) -> int:
        return self.ques_mark if self.ques_mark is not None else 1

    def __repr__(self) -> str:
        return f"<Exam(exam_id={self.exam_id}, name={self.name})>"


class Question(Base, TimestampMixin):
    """Multiple choice question.

    ``correct`` holds the content of the correct option rather than its
    index; the index given at ingestion is resolved against ``options``
    before the row is written.
    """

    __tablename__ = "questions"

    question_id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    exam_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("exam.exam_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    correct: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    exam: Mapped["Exam"] = relationship("Exam", back_populates="questions")

    def __repr__(self) -> str:
        return f"<Question(question_id={self.question_id}, exam_id={self.exam_id})>"
