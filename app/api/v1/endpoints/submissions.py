"""Exam attempt, submission and result endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import CurrentIdentity, ensure_self_or_admin
from app.core.exceptions import ForbiddenError
from app.schemas.submission import (
    ExamResultResponse,
    PreviousAttemptResponse,
    StartAttemptResponse,
    SubmitExamRequest,
    SubmitExamResponse,
)
from app.services.submission import SubmissionService

router = APIRouter()


@router.post("/exam/submit", response_model=SubmitExamResponse)
def submit_exam(
    request: SubmitExamRequest,
    identity: CurrentIdentity,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Score and record an exam submission.

    - `submission_status == "submitted"` records a graded result
    - any other status saves a draft (no result row)
    - also accepts `text/plain` JSON bodies sent with `navigator.sendBeacon`
    """
    ensure_self_or_admin(identity, request.user_id)
    service = SubmissionService(db)
    return service.submit(request)


@router.get("/exam/{exam_id}/start/{user_id}", response_model=StartAttemptResponse)
def start_exam(
    exam_id: int,
    user_id: int,
    identity: CurrentIdentity,
    db: Annotated[Session, Depends(get_db)],
):
    """Get the question paper for an enrolled student."""
    ensure_self_or_admin(identity, user_id)
    service = SubmissionService(db)
    return service.start_attempt(exam_id, user_id)


@router.get("/exam-result/{result_id}", response_model=ExamResultResponse)
def get_exam_result(
    result_id: int,
    identity: CurrentIdentity,
    db: Annotated[Session, Depends(get_db)],
):
    """Get a single graded result."""
    service = SubmissionService(db)
    result = service.get_result(result_id)
    if not identity.is_admin and result.user_id != identity.subject_id:
        raise ForbiddenError("You can only access your own records")
    return result


@router.get("/exam/{exam_id}/result/{user_id}", response_model=ExamResultResponse)
def get_previous_result(
    exam_id: int,
    user_id: int,
    identity: CurrentIdentity,
    db: Annotated[Session, Depends(get_db)],
):
    """Get the student's most recent graded result for an exam."""
    ensure_self_or_admin(identity, user_id)
    service = SubmissionService(db)
    return service.get_previous_result(exam_id, user_id)


@router.get("/exam/{exam_id}/attempts/{user_id}", response_model=PreviousAttemptResponse)
def get_previous_attempt(
    exam_id: int,
    user_id: int,
    identity: CurrentIdentity,
    db: Annotated[Session, Depends(get_db)],
):
    """Get the latest saved answers, in question order, to resume an exam."""
    ensure_self_or_admin(identity, user_id)
    service = SubmissionService(db)
    return service.get_previous_attempt(exam_id, user_id)
