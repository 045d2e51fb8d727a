"""Question ingestion schemas."""

from datetime import datetime

from app.schemas.common import BaseSchema


class QuestionResponse(BaseSchema):
    """Stored question, including its correct option content."""

    question_id: int
    exam_id: int
    question: str
    options: list[str]
    correct: str | None
    image_url: str | None
    created_at: datetime


class QuestionImportError(BaseSchema):
    """Row-level import error."""

    row: int
    column: str | None = None
    message: str


class QuestionImportResult(BaseSchema):
    """Result of a question workbook import."""

    exam_id: int
    total_rows: int
    successful_rows: int
    failed_rows: int
    skipped_rows: int
    errors: list[QuestionImportError] = []
    message: str
