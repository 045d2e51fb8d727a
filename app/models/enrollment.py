"""Exam enrollment model."""

import enum

from sqlalchemy import Enum, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.base import ExamStudentMixin, IDMixin, TimestampMixin


class EnrollmentStatus(str, enum.Enum):
    """Enrollment status enumeration."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Enrollment(Base, IDMixin, TimestampMixin, ExamStudentMixin):
    """A student's enrollment request for an exam, with optional payment proof."""

    __tablename__ = "enrol_exam"

    payment_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[EnrollmentStatus] = mapped_column(
        Enum(
            EnrollmentStatus,
            name="enrollmentstatus",
            values_callable=lambda e: [m.value for m in e],
            native_enum=False,
            length=20,
        ),
        default=EnrollmentStatus.PENDING,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("exam_id", "user_id", name="uq_enrol_exam_user"),
    )

    def __repr__(self) -> str:
        return f"<Enrollment(exam_id={self.exam_id}, user_id={self.user_id}, status={self.status})>"
