"""Question ingestion: single questions and workbook imports."""

import json
import logging
from io import BytesIO
from typing import Any

from openpyxl import load_workbook
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import ClientInputError, CollaboratorError, NotFoundError, UploadError
from app.core.storage import ObjectStorage, StoredAsset
from app.models.exam import Exam, Question
from app.schemas.question import QuestionImportError, QuestionImportResult, QuestionResponse
from app.services.enrollment import discard_uploaded_asset
from app.services.scoring import resolve_correct_option

logger = logging.getLogger(__name__)

QUESTION_IMAGE_FOLDER = "questions"


def parse_options(options: Any) -> list[str]:
    """Options arrive as a list or as a JSON encoded list from form fields."""
    if options is None:
        return []
    if isinstance(options, str):
        try:
            options = json.loads(options)
        except ValueError:
            raise ClientInputError("Options must be a JSON list")
    if not isinstance(options, list):
        raise ClientInputError("Options must be a list")
    return [str(o) for o in options]


class QuestionService:
    """Question ingestion service."""

    def __init__(self, db: Session, storage: ObjectStorage | None = None):
        self.db = db
        self.storage = storage

    def _get_exam(self, exam_id: int) -> Exam:
        exam = self.db.execute(select(Exam).where(Exam.exam_id == exam_id)).scalar_one_or_none()
        if not exam:
            raise NotFoundError("Exam", str(exam_id))
        return exam

    def create_question(
        self,
        exam_id: int | None,
        question_text: str | None,
        options: Any,
        correct_option: Any,
        image_content: bytes | None = None,
        image_name: str | None = None,
        content_type: str | None = None,
    ) -> QuestionResponse:
        """
        Store one question.

        ``correct_option`` may be an index into ``options`` or the option
        content; it is stored as content.
        """
        if exam_id is None:
            raise ClientInputError("Exam ID required")
        if not question_text:
            raise ClientInputError("Question text required")

        parsed_options = parse_options(options)
        if not parsed_options:
            raise ClientInputError("At least one option is required")
        self._get_exam(exam_id)

        asset: StoredAsset | None = None
        if image_content:
            if self.storage is None:
                raise CollaboratorError("Object storage is not configured")
            asset = self.storage.upload(
                image_content,
                image_name or "question",
                QUESTION_IMAGE_FOLDER,
                content_type=content_type,
            )

        question = Question(
            exam_id=exam_id,
            question=question_text,
            options=parsed_options,
            correct=resolve_correct_option(parsed_options, correct_option),
            image_url=asset.url if asset else None,
        )
        try:
            with self.db.begin_nested():
                self.db.add(question)
        except SQLAlchemyError as e:
            logger.error(f"[QUESTION] Insert failed for exam={exam_id}: {e}")
            discard_uploaded_asset(self.storage, asset, "QUESTION")
            raise CollaboratorError("Failed to upload question", error=str(e))

        return QuestionResponse.model_validate(question)

    # ==========================================
    # Excel Import
    # ==========================================

    def import_questions(self, exam_id: int, file_content: bytes) -> QuestionImportResult:
        """
        Import questions from a workbook.

        Expected columns: ``question``, one or more ``option ...`` columns and
        ``correct`` (an option index starting at 0, or the option text).
        Blank rows are skipped; invalid rows are reported and skipped.
        """
        logger.info(f"[QUESTION IMPORT] Starting - exam_id={exam_id}, file_size={len(file_content)} bytes")
        self._get_exam(exam_id)

        try:
            wb = load_workbook(BytesIO(file_content), data_only=True)
            ws = wb.active
        except Exception as e:
            logger.error(f"[QUESTION IMPORT] Failed to load Excel: {str(e)}")
            raise UploadError(f"Invalid Excel file: {str(e)}")

        headers = [str(cell.value).strip().lower() if cell.value else "" for cell in ws[1]]

        question_col: int | None = None
        correct_col: int | None = None
        option_cols: list[int] = []
        for idx, header in enumerate(headers):
            if header.startswith("question"):
                question_col = idx
            elif header.startswith("correct"):
                correct_col = idx
            elif header.startswith("option"):
                option_cols.append(idx)

        if question_col is None or correct_col is None or not option_cols:
            raise UploadError(
                "Workbook must have 'question', 'option' and 'correct' columns",
                details={"headers": headers},
            )

        errors: list[QuestionImportError] = []
        total_rows = 0
        successful_rows = 0
        skipped_rows = 0

        for row_num, row in enumerate(ws.iter_rows(min_row=2, values_only=True), start=2):
            if not any(cell is not None and str(cell).strip() for cell in row):
                skipped_rows += 1
                continue
            total_rows += 1

            def cell(idx: int) -> Any:
                return row[idx] if idx < len(row) else None

            question_text = str(cell(question_col)).strip() if cell(question_col) is not None else ""
            if not question_text:
                errors.append(QuestionImportError(row=row_num, column="question", message="Question text is required"))
                continue

            options = [str(cell(i)).strip() for i in option_cols if cell(i) is not None and str(cell(i)).strip()]
            if not options:
                errors.append(QuestionImportError(row=row_num, column="option", message="At least one option is required"))
                continue

            raw_correct = cell(correct_col)
            if raw_correct is None or not str(raw_correct).strip():
                errors.append(QuestionImportError(row=row_num, column="correct", message="Correct option is required"))
                continue
            if isinstance(raw_correct, float) and raw_correct.is_integer():
                raw_correct = int(raw_correct)

            correct = resolve_correct_option(options, raw_correct if isinstance(raw_correct, int) else str(raw_correct).strip())
            if correct not in options:
                errors.append(QuestionImportError(
                    row=row_num,
                    column="correct",
                    message=f"Correct option '{raw_correct}' does not match any option",
                ))
                continue

            self.db.add(Question(
                exam_id=exam_id,
                question=question_text,
                options=options,
                correct=correct,
            ))
            successful_rows += 1

        try:
            self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"[QUESTION IMPORT] Insert failed for exam={exam_id}: {e}")
            raise CollaboratorError("Failed to import questions", error=str(e))

        failed_rows = len(errors)
        logger.info(
            f"[QUESTION IMPORT] Done - exam_id={exam_id}, success={successful_rows}, "
            f"failed={failed_rows}, skipped={skipped_rows}"
        )
        return QuestionImportResult(
            exam_id=exam_id,
            total_rows=total_rows,
            successful_rows=successful_rows,
            failed_rows=failed_rows,
            skipped_rows=skipped_rows,
            errors=errors,
            message=f"Imported {successful_rows} of {total_rows} questions",
        )
