"""Re-exam request workflow."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import ClientInputError, CollaboratorError, NotFoundError, PolicyViolationError
from app.models.re_exam import (
    ACTIVE_RE_EXAM_STATUSES,
    RE_EXAM_TRANSITIONS,
    ReExamRequest,
    ReExamStatus,
)
from app.schemas.re_exam import ReExamRequestCreate, ReExamRequestResponse

logger = logging.getLogger(__name__)


class ReExamService:
    """Re-exam request service."""

    def __init__(self, db: Session):
        self.db = db

    def get_active_request(self, exam_id: int, user_id: int) -> ReExamRequest | None:
        result = self.db.execute(
            select(ReExamRequest)
            .where(
                ReExamRequest.exam_id == exam_id,
                ReExamRequest.user_id == user_id,
                ReExamRequest.status.in_(ACTIVE_RE_EXAM_STATUSES),
            )
            .order_by(ReExamRequest.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    def request_re_exam(self, request: ReExamRequestCreate) -> ReExamRequestResponse:
        """Create a pending request unless one is already pending or approved."""
        if request.exam_id is None:
            raise ClientInputError("Exam ID required")
        if request.user_id is None:
            raise ClientInputError("User ID required")
        if not request.reason:
            raise ClientInputError("Reason required")

        active = self.get_active_request(request.exam_id, request.user_id)
        if active:
            raise PolicyViolationError(
                f"A re-exam request is already {active.status.value}",
                details={"request_id": active.id, "status": active.status.value},
            )

        re_exam = ReExamRequest(
            exam_id=request.exam_id,
            user_id=request.user_id,
            reason=request.reason,
            status=ReExamStatus.PENDING,
        )
        try:
            with self.db.begin_nested():
                self.db.add(re_exam)
        except SQLAlchemyError as e:
            raise CollaboratorError("Failed to create re-exam request", error=str(e))

        logger.info(f"Re-exam requested for exam={request.exam_id} user={request.user_id}")
        return ReExamRequestResponse.model_validate(re_exam)

    def get_latest_request(self, exam_id: int, user_id: int) -> ReExamRequestResponse:
        result = self.db.execute(
            select(ReExamRequest)
            .where(
                ReExamRequest.exam_id == exam_id,
                ReExamRequest.user_id == user_id,
            )
            .order_by(ReExamRequest.id.desc())
            .limit(1)
        )
        re_exam = result.scalar_one_or_none()
        if not re_exam:
            raise NotFoundError("Re-exam request", f"{exam_id}/{user_id}")
        return ReExamRequestResponse.model_validate(re_exam)

    def update_request_status(
        self,
        request_id: int,
        status: ReExamStatus,
    ) -> ReExamRequestResponse:
        result = self.db.execute(select(ReExamRequest).where(ReExamRequest.id == request_id))
        re_exam = result.scalar_one_or_none()
        if not re_exam:
            raise NotFoundError("Re-exam request", str(request_id))

        if status not in RE_EXAM_TRANSITIONS[re_exam.status]:
            raise PolicyViolationError(
                f"Cannot move a {re_exam.status.value} request to {status.value}"
            )

        logger.info(f"Re-exam request {request_id}: {re_exam.status.value} -> {status.value}")
        re_exam.status = status
        self.db.flush()
        self.db.refresh(re_exam)
        return ReExamRequestResponse.model_validate(re_exam)
