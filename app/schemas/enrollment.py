"""Enrollment schemas."""

from datetime import date, datetime

from app.models.enrollment import EnrollmentStatus
from app.schemas.common import BaseSchema


class EnrollmentResponse(BaseSchema):
    """Enrollment record response schema."""

    id: int
    exam_id: int
    user_id: int
    payment_url: str | None
    status: EnrollmentStatus
    created_at: datetime


class EnrollmentCheckResponse(BaseSchema):
    """Whether a student is enrolled, and the enrollment status if so."""

    enrolled: bool
    status: EnrollmentStatus | None = None


class EnrolledExam(BaseSchema):
    """Exam details with the student's enrollment status."""

    exam_id: int
    name: str
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    subject_id: int | None = None
    enrollment_status: EnrollmentStatus


class EnrollmentStatusUpdate(BaseSchema):
    """Admin decision on an enrollment."""

    status: EnrollmentStatus
