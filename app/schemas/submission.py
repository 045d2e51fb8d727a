"""Exam submission, result and resume schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import Field

from app.schemas.common import BaseSchema


# ==========================================
# Submission
# ==========================================

class SubmitExamRequest(BaseSchema):
    """
    Exam submission payload.

    Presence of ``exam_id``, ``user_id`` and ``answers`` is checked by the
    submission service so that a missing field is reported as a client input
    error before anything is written.
    """

    exam_id: int | None = None
    user_id: int | None = None
    # {question_id: {"selectedOption": "..."}}
    answers: dict[str, dict[str, Any]] | None = None
    time_taken: int | None = Field(None, ge=0, description="Seconds spent on the attempt")
    submission_status: str | None = Field(
        None,
        max_length=50,
        description="'submitted' for a final attempt; any other value, or none, saves a draft",
    )


class SubmitExamResponse(BaseSchema):
    """Scoring outcome returned to the student."""

    exam_name: str
    exam_type: str | None = None
    score: int
    total: int
    correct: int
    incorrect: int
    total_questions: int
    percentage: Decimal
    passed: bool
    submission_status: str | None = None
    result_id: int | None = None


# ==========================================
# Results and resume
# ==========================================

class ExamResultResponse(BaseSchema):
    """Stored result of a final submission."""

    id: int
    exam_id: int
    user_id: int
    correct: int
    incorrect: int
    score: int
    percentage: Decimal
    passed: bool
    time_taken: int | None
    attempted_at: datetime


class ReplayAnswer(BaseSchema):
    """One saved answer, in question order, for client replay."""

    question_id: str
    question: str | None
    selected_option: Any = None
    saved_at: str | None = None


class PreviousAttemptResponse(BaseSchema):
    """Latest attempt log converted for resuming an exam."""

    attempt_id: int
    exam_id: int
    user_id: int
    created_at: datetime
    answers: list[ReplayAnswer]


# ==========================================
# Starting an attempt
# ==========================================

class QuestionPaperItem(BaseSchema):
    """Question as shown to a student, without its answer."""

    question_id: int
    question: str
    options: list[str]
    image_url: str | None = None


class StartAttemptResponse(BaseSchema):
    """Exam metadata and question paper for an enrolled student."""

    exam_id: int
    name: str
    description: str | None = None
    type: str | None = None
    duration: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    ques_mark: int
    total_questions: int
    attempted: str | None
    questions: list[QuestionPaperItem]
