"""Exam enrollment service."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import ClientInputError, CollaboratorError, NotFoundError, PolicyViolationError
from app.core.storage import ObjectStorage, StoredAsset
from app.models.enrollment import Enrollment, EnrollmentStatus
from app.models.exam import Exam
from app.schemas.enrollment import (
    EnrolledExam,
    EnrollmentCheckResponse,
    EnrollmentResponse,
)

logger = logging.getLogger(__name__)

PAYMENT_PROOF_FOLDER = "exam_enrollments_payments"


def discard_uploaded_asset(storage: ObjectStorage, asset: StoredAsset | None, context: str) -> None:
    """Delete an asset whose database row was never written.

    A failed delete is logged and swallowed so the caller can still report
    the error that triggered the rollback.
    """
    if asset is None:
        return
    try:
        storage.delete(asset.id)
        logger.info(f"[{context}] Rolled back uploaded asset {asset.id}")
    except Exception as e:
        logger.warning(f"[{context}] Asset rollback failed for {asset.id}: {e}")


class EnrollmentService:
    """Enrollment management service."""

    def __init__(self, db: Session, storage: ObjectStorage | None = None):
        self.db = db
        self.storage = storage

    def get_enrollment(self, exam_id: int, user_id: int) -> Enrollment | None:
        result = self.db.execute(
            select(Enrollment).where(
                Enrollment.exam_id == exam_id,
                Enrollment.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    def enroll(
        self,
        exam_id: int | None,
        user_id: int | None,
        file_content: bytes | None = None,
        file_name: str | None = None,
        content_type: str | None = None,
    ) -> EnrollmentResponse:
        """
        Enroll a student in an exam.

        A payment proof, when given, is uploaded before the row is written. If
        the insert then fails the upload is deleted again before the error is
        returned.
        """
        if exam_id is None:
            raise ClientInputError("Exam ID required")
        if user_id is None:
            raise ClientInputError("User ID required")

        exam = self.db.execute(select(Exam).where(Exam.exam_id == exam_id)).scalar_one_or_none()
        if not exam:
            raise NotFoundError("Exam", str(exam_id))
        if self.get_enrollment(exam_id, user_id):
            raise PolicyViolationError("Already enrolled in this exam")

        asset: StoredAsset | None = None
        if file_content:
            if self.storage is None:
                raise CollaboratorError("Object storage is not configured")
            asset = self.storage.upload(
                file_content,
                file_name or "payment",
                PAYMENT_PROOF_FOLDER,
                content_type=content_type,
            )
            logger.info(f"[ENROLL] Uploaded payment proof {asset.id} for exam={exam_id} user={user_id}")

        enrollment = Enrollment(
            exam_id=exam_id,
            user_id=user_id,
            payment_url=asset.url if asset else None,
            status=EnrollmentStatus.PENDING,
        )
        try:
            with self.db.begin_nested():
                self.db.add(enrollment)
        except SQLAlchemyError as e:
            logger.error(f"[ENROLL] Insert failed for exam={exam_id} user={user_id}: {e}")
            discard_uploaded_asset(self.storage, asset, "ENROLL")
            raise CollaboratorError("Failed to enrol in exam", error=str(e))

        return EnrollmentResponse.model_validate(enrollment)

    def check_enrollment(self, exam_id: int, user_id: int) -> EnrollmentCheckResponse:
        """No enrollment row is a normal "not enrolled" answer, not an error."""
        enrollment = self.get_enrollment(exam_id, user_id)
        if enrollment is None:
            return EnrollmentCheckResponse(enrolled=False)
        return EnrollmentCheckResponse(
            enrolled=True,
            status=enrollment.status or EnrollmentStatus.PENDING,
        )

    def get_enrolled_exams(self, user_id: int) -> list[EnrolledExam]:
        """Exams the student is enrolled in. Enrollments of deleted exams are skipped."""
        result = self.db.execute(
            select(Enrollment, Exam)
            .outerjoin(Exam, Exam.exam_id == Enrollment.exam_id)
            .where(Enrollment.user_id == user_id)
            .order_by(Enrollment.created_at.desc(), Enrollment.id.desc())
        )

        exams = []
        for enrollment, exam in result.all():
            if exam is None:
                continue
            exams.append(
                EnrolledExam(
                    exam_id=exam.exam_id,
                    name=exam.name,
                    description=exam.description,
                    start_date=exam.start_date,
                    end_date=exam.end_date,
                    subject_id=exam.subject_id,
                    enrollment_status=enrollment.status or EnrollmentStatus.PENDING,
                )
            )
        return exams

    def update_status(
        self,
        exam_id: int,
        user_id: int,
        status: EnrollmentStatus,
    ) -> EnrollmentResponse:
        enrollment = self.get_enrollment(exam_id, user_id)
        if not enrollment:
            raise NotFoundError("Enrollment", f"{exam_id}/{user_id}")

        logger.info(
            f"[ENROLL] Status {enrollment.status.value} -> {status.value} "
            f"for exam={exam_id} user={user_id}"
        )
        enrollment.status = status
        self.db.flush()
        self.db.refresh(enrollment)
        return EnrollmentResponse.model_validate(enrollment)
