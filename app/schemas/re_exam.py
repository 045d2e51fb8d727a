"""Re-exam request schemas."""

from datetime import datetime

from pydantic import Field

from app.models.re_exam import ReExamStatus
from app.schemas.common import BaseSchema


class ReExamRequestCreate(BaseSchema):
    """Re-exam request payload."""

    exam_id: int | None = None
    user_id: int | None = None
    reason: str | None = Field(None, max_length=2000)


class ReExamRequestResponse(BaseSchema):
    """Re-exam request response schema."""

    id: int
    exam_id: int
    user_id: int
    reason: str
    status: ReExamStatus
    created_at: datetime
    updated_at: datetime


class ReExamStatusUpdate(BaseSchema):
    """Admin decision on a re-exam request."""

    status: ReExamStatus
