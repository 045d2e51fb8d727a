"""Database models package."""

from app.models.attempt import IN_PROGRESS, SUBMITTED, ExamAccess, ExamResult, UserAttempt
from app.models.enrollment import Enrollment, EnrollmentStatus
from app.models.exam import Exam, Question
from app.models.re_exam import ACTIVE_RE_EXAM_STATUSES, ReExamRequest, ReExamStatus
from app.models.student import Student

__all__ = [
    # Exam
    "Exam",
    "Question",
    # Student
    "Student",
    # Enrollment
    "Enrollment",
    "EnrollmentStatus",
    # Attempts
    "ExamAccess",
    "ExamResult",
    "UserAttempt",
    "SUBMITTED",
    "IN_PROGRESS",
    # Re-exam
    "ReExamRequest",
    "ReExamStatus",
    "ACTIVE_RE_EXAM_STATUSES",
]
