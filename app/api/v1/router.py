"""Main API router aggregating all module routers."""

from fastapi import APIRouter

from app.api.v1.endpoints import (
    certificates,
    enrollments,
    questions,
    re_exams,
    submissions,
)
from app.schemas.common import ErrorResponse

api_router = APIRouter(
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)

# Student: exam attempts, submission and results
api_router.include_router(
    submissions.router,
    prefix="/student",
    tags=["Exam Submission"],
)

# Student: enrollment
api_router.include_router(
    enrollments.router,
    prefix="/student",
    tags=["Enrollment"],
)

# Student: re-exam requests
api_router.include_router(
    re_exams.router,
    prefix="/student/re-exam",
    tags=["Re-Exam"],
)

# Student: certificates
api_router.include_router(
    certificates.router,
    prefix="/student/certificate",
    tags=["Certificates"],
)

# Admin: enrollment decisions
api_router.include_router(
    enrollments.admin_router,
    prefix="/admin",
    tags=["Admin - Enrollment"],
)

# Admin: re-exam decisions
api_router.include_router(
    re_exams.admin_router,
    prefix="/admin/re-exam",
    tags=["Admin - Re-Exam"],
)

# Admin: question ingestion
api_router.include_router(
    questions.router,
    prefix="/admin/questions",
    tags=["Admin - Questions"],
)
