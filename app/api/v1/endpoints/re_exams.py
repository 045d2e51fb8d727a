"""Re-exam request endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import AdminIdentity, CurrentIdentity, ensure_self_or_admin
from app.schemas.re_exam import ReExamRequestCreate, ReExamRequestResponse, ReExamStatusUpdate
from app.services.re_exam import ReExamService

router = APIRouter()
admin_router = APIRouter()


@router.post("/request", response_model=ReExamRequestResponse, status_code=status.HTTP_201_CREATED)
def request_re_exam(
    request: ReExamRequestCreate,
    identity: CurrentIdentity,
    db: Annotated[Session, Depends(get_db)],
):
    """Ask to sit an exam again. Rejected while a request is pending or approved."""
    ensure_self_or_admin(identity, request.user_id)
    service = ReExamService(db)
    return service.request_re_exam(request)


@router.get("/{exam_id}/{user_id}", response_model=ReExamRequestResponse)
def get_re_exam_request(
    exam_id: int,
    user_id: int,
    identity: CurrentIdentity,
    db: Annotated[Session, Depends(get_db)],
):
    """Get the student's latest re-exam request for an exam."""
    ensure_self_or_admin(identity, user_id)
    service = ReExamService(db)
    return service.get_latest_request(exam_id, user_id)


@admin_router.patch("/{request_id}", response_model=ReExamRequestResponse)
def update_re_exam_status(
    request_id: int,
    request: ReExamStatusUpdate,
    identity: AdminIdentity,
    db: Annotated[Session, Depends(get_db)],
):
    """Approve, decline or complete a re-exam request. Requires admin role."""
    service = ReExamService(db)
    return service.update_request_status(request_id, request.status)
