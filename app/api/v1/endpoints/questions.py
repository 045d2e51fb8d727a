"""Question ingestion endpoints (admin)."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import AdminIdentity, AppSettings, Storage
from app.core.exceptions import UploadError
from app.core.storage import validate_upload
from app.schemas.question import QuestionImportResult, QuestionResponse
from app.services.question import QuestionService

router = APIRouter()


@router.post("", response_model=QuestionResponse, status_code=status.HTTP_201_CREATED)
def upload_question(
    identity: AdminIdentity,
    settings: AppSettings,
    storage: Storage,
    db: Annotated[Session, Depends(get_db)],
    exam_id: int | None = Form(None),
    question_text: str | None = Form(None),
    options: str | None = Form(None, description="JSON list of option strings"),
    correct_option: str | None = Form(None, description="Option index or option text"),
    file: UploadFile | None = File(None),
):
    """
    Add a question to an exam.

    `correct_option` may be an index into `options`; it is stored as the
    option text. Requires admin role.
    """
    content: bytes | None = None
    if file is not None and file.filename:
        content = file.file.read()
        validate_upload(settings, file.filename, content, settings.ALLOWED_IMAGE_EXTENSIONS)

    service = QuestionService(db, storage)
    return service.create_question(
        exam_id,
        question_text,
        options,
        correct_option,
        image_content=content,
        image_name=file.filename if file is not None else None,
        content_type=file.content_type if file is not None else None,
    )


@router.post("/import", response_model=QuestionImportResult)
def import_questions(
    identity: AdminIdentity,
    settings: AppSettings,
    db: Annotated[Session, Depends(get_db)],
    exam_id: int = Form(...),
    file: UploadFile = File(...),
):
    """
    Import questions from an Excel workbook.

    Expected columns: question, option_1 ... option_n, correct.
    Invalid rows are reported and skipped. Requires admin role.
    """
    if not file.filename:
        raise UploadError("No file provided")
    if not file.filename.endswith(".xlsx"):
        raise UploadError("Only .xlsx files are allowed")

    content = file.file.read()
    if len(content) > settings.max_upload_bytes:
        raise UploadError(f"File size exceeds {settings.MAX_UPLOAD_SIZE_MB}MB limit")

    service = QuestionService(db)
    return service.import_questions(exam_id, content)
