"""Certificate download endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import AppSettings, CurrentIdentity, Storage, ensure_self_or_admin
from app.services.certificate import CertificateService, iter_certificate

router = APIRouter()


@router.get("/{user_id}/{exam_id}")
def download_certificate(
    user_id: int,
    exam_id: int,
    identity: CurrentIdentity,
    settings: AppSettings,
    storage: Storage,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Download the certificate PDF for a passed exam.

    Uses the most recent result; below 50% the request is rejected.
    """
    ensure_self_or_admin(identity, user_id)
    service = CertificateService(db, storage, settings)
    certificate = service.generate(user_id, exam_id)

    return StreamingResponse(
        iter_certificate(certificate),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{certificate.filename}"'},
    )
