"""Re-exam request model."""

import enum

from sqlalchemy import Enum, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.base import ExamStudentMixin, IDMixin, TimestampMixin


class ReExamStatus(str, enum.Enum):
    """Re-exam request status enumeration."""

    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"
    COMPLETED = "completed"


# A pair may hold at most one request in these states
ACTIVE_RE_EXAM_STATUSES = (ReExamStatus.PENDING, ReExamStatus.APPROVED)

RE_EXAM_TRANSITIONS: dict[ReExamStatus, set[ReExamStatus]] = {
    ReExamStatus.PENDING: {ReExamStatus.APPROVED, ReExamStatus.DECLINED},
    ReExamStatus.APPROVED: {ReExamStatus.COMPLETED, ReExamStatus.DECLINED},
    ReExamStatus.DECLINED: set(),
    ReExamStatus.COMPLETED: set(),
}


class ReExamRequest(Base, IDMixin, TimestampMixin, ExamStudentMixin):
    """Student request to sit an exam again."""

    __tablename__ = "re_attempt"

    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[ReExamStatus] = mapped_column(
        Enum(
            ReExamStatus,
            name="reexamstatus",
            values_callable=lambda e: [m.value for m in e],
            native_enum=False,
            length=20,
        ),
        default=ReExamStatus.PENDING,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<ReExamRequest(id={self.id}, exam_id={self.exam_id}, status={self.status})>"
