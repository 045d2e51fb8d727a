"""Certificate eligibility and PDF rendering."""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from io import BytesIO

from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.exceptions import NotFoundError, PolicyViolationError
from app.core.storage import ObjectStorage
from app.models.student import Student
from app.services.attempt_store import AttemptRecordStore
from app.services.scoring import PASS_PERCENTAGE

logger = logging.getLogger(__name__)

CERTIFICATE_SUBTITLE = "has successfully completed the examination"
STREAM_CHUNK_SIZE = 64 * 1024


@dataclass
class RenderedCertificate:
    """Finished certificate ready to stream."""

    content: bytes
    filename: str


def safe_filename_part(value: str, max_length: int, fallback: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9]", "", value or "")[:max_length]
    return cleaned or fallback


def render_certificate(
    background: bytes,
    student_name: str,
    exam_name: str,
    score: int,
    total_marks: int,
    percentage: Decimal,
    attempted_at: datetime,
) -> bytes:
    """Draw the certificate text over a full-page background image."""
    buf = BytesIO()
    page_size = landscape(A4)
    c = canvas.Canvas(buf, pagesize=page_size)
    w, h = page_size

    c.drawImage(ImageReader(BytesIO(background)), 0, 0, width=w, height=h)

    c.setFillColorRGB(0.1, 0.1, 0.1)

    c.setFont("Helvetica-Bold", 34)
    c.drawCentredString(w / 2, h * 0.55, student_name)

    c.setFont("Helvetica", 16)
    c.drawCentredString(w / 2, h * 0.55 - 14 * mm, CERTIFICATE_SUBTITLE)

    c.setFont("Helvetica-Bold", 22)
    c.drawCentredString(w / 2, h * 0.55 - 28 * mm, exam_name)

    c.setFont("Helvetica", 14)
    c.drawCentredString(
        w / 2,
        h * 0.55 - 40 * mm,
        f"Score: {score} / {total_marks}  |  Percentage: {percentage}%",
    )

    c.setFont("Helvetica", 12)
    c.drawString(25 * mm, 20 * mm, f"Date: {attempted_at.strftime('%d %B %Y')}")

    c.showPage()
    c.save()
    return buf.getvalue()


def iter_certificate(certificate: RenderedCertificate) -> Iterator[bytes]:
    """Stream an already rendered PDF in chunks.

    Lookups, the background fetch and rendering all happen in
    ``CertificateService.generate`` before the response starts, so their
    errors still reach the client as error responses.
    """
    view = memoryview(certificate.content)
    for start in range(0, len(view), STREAM_CHUNK_SIZE):
        yield bytes(view[start:start + STREAM_CHUNK_SIZE])


class CertificateService:
    """Certificate pipeline for passed exams."""

    def __init__(self, db: Session, storage: ObjectStorage, settings: Settings):
        self.db = db
        self.storage = storage
        self.settings = settings
        self.store = AttemptRecordStore(db)

    def generate(self, user_id: int, exam_id: int) -> RenderedCertificate:
        """
        Render the certificate for the student's latest result.

        Fails with not-found when the exam, its background, the student or a
        result is missing, and with a policy error when the latest result is
        below the pass mark.
        """
        exam = self.store.get_exam(exam_id)
        if not exam:
            raise NotFoundError("Exam", str(exam_id))
        if not exam.certificate_bg:
            raise NotFoundError("Certificate background", str(exam_id))

        student = self.db.execute(
            select(Student).where(Student.id == user_id)
        ).scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", str(user_id))

        result = self.store.get_latest_result(exam_id, user_id)
        if not result:
            raise NotFoundError("Result", f"{exam_id}/{user_id}")
        if result.percentage < PASS_PERCENTAGE:
            raise PolicyViolationError(
                f"A certificate requires at least {PASS_PERCENTAGE}%",
                details={"percentage": str(result.percentage)},
            )

        logger.info(f"[CERTIFICATE] Rendering for exam={exam_id} user={user_id} result={result.id}")
        background = self.storage.fetch(exam.certificate_bg)

        total_marks = (result.correct + result.incorrect) * exam.mark_per_question
        content = render_certificate(
            background,
            student_name=student.name,
            exam_name=exam.name,
            score=result.score,
            total_marks=total_marks,
            percentage=result.percentage,
            attempted_at=result.attempted_at,
        )

        max_length = self.settings.CERTIFICATE_NAME_MAX_LENGTH
        filename = (
            f"certificate_{safe_filename_part(student.name, max_length, 'student')}"
            f"_{safe_filename_part(exam.name, max_length, 'exam')}.pdf"
        )
        return RenderedCertificate(content=content, filename=filename)
