"""Exam enrollment endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import (
    AdminIdentity,
    AppSettings,
    CurrentIdentity,
    Storage,
    ensure_self_or_admin,
)
from app.core.storage import validate_upload
from app.schemas.enrollment import (
    EnrolledExam,
    EnrollmentCheckResponse,
    EnrollmentResponse,
    EnrollmentStatusUpdate,
)
from app.services.enrollment import EnrollmentService

router = APIRouter()
admin_router = APIRouter()


@router.post("/enroll", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
def enroll_in_exam(
    identity: CurrentIdentity,
    settings: AppSettings,
    storage: Storage,
    db: Annotated[Session, Depends(get_db)],
    exam_id: int | None = Form(None),
    user_id: int | None = Form(None),
    file: UploadFile | None = File(None),
):
    """
    Enroll in an exam with an optional payment proof.

    The proof is uploaded first and deleted again if the enrollment
    cannot be saved.
    """
    ensure_self_or_admin(identity, user_id)

    content: bytes | None = None
    if file is not None and file.filename:
        content = file.file.read()
        validate_upload(settings, file.filename, content, settings.ALLOWED_IMAGE_EXTENSIONS)

    service = EnrollmentService(db, storage)
    return service.enroll(
        exam_id,
        user_id,
        file_content=content,
        file_name=file.filename if file is not None else None,
        content_type=file.content_type if file is not None else None,
    )


@router.get("/enrollment/{exam_id}/{user_id}", response_model=EnrollmentCheckResponse)
def check_enrollment(
    exam_id: int,
    user_id: int,
    identity: CurrentIdentity,
    db: Annotated[Session, Depends(get_db)],
):
    """Check whether the student is enrolled in the exam."""
    ensure_self_or_admin(identity, user_id)
    service = EnrollmentService(db)
    return service.check_enrollment(exam_id, user_id)


@router.get("/enrolled-exams/{user_id}", response_model=list[EnrolledExam])
def get_enrolled_exams(
    user_id: int,
    identity: CurrentIdentity,
    db: Annotated[Session, Depends(get_db)],
):
    """List every exam the student is enrolled in."""
    ensure_self_or_admin(identity, user_id)
    service = EnrollmentService(db)
    return service.get_enrolled_exams(user_id)


@admin_router.patch("/enrollment/{exam_id}/{user_id}", response_model=EnrollmentResponse)
def update_enrollment_status(
    exam_id: int,
    user_id: int,
    request: EnrollmentStatusUpdate,
    identity: AdminIdentity,
    db: Annotated[Session, Depends(get_db)],
):
    """Approve or reject an enrollment. Requires admin role."""
    service = EnrollmentService(db)
    return service.update_status(exam_id, user_id, request.status)
