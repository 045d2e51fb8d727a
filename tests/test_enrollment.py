import pytest
from sqlalchemy import func, select

from app.core.exceptions import ClientInputError, CollaboratorError, NotFoundError, PolicyViolationError
from app.models import Enrollment, Exam
from app.models.enrollment import EnrollmentStatus
from app.services.enrollment import PAYMENT_PROOF_FOLDER, EnrollmentService, discard_uploaded_asset

USER_ID = 7


def enrollment_count(db):
    return db.execute(select(func.count()).select_from(Enrollment)).scalar_one()


def test_enroll_uploads_payment_proof(db, make_exam, storage):
    exam = make_exam()

    response = EnrollmentService(db, storage).enroll(
        exam.exam_id, USER_ID, file_content=b"receipt", file_name="receipt.png", content_type="image/png",
    )

    assert response.status == EnrollmentStatus.PENDING
    assert len(storage.uploads) == 1
    asset_id, file_name, content = storage.uploads[0]
    assert asset_id.startswith(PAYMENT_PROOF_FOLDER)
    assert content == b"receipt"
    assert response.payment_url.endswith(asset_id)


def test_enroll_without_payment_proof(db, make_exam, storage):
    exam = make_exam()

    response = EnrollmentService(db, storage).enroll(exam.exam_id, USER_ID)

    assert response.payment_url is None
    assert storage.uploads == []


def test_enroll_twice_is_rejected(db, make_exam, storage):
    exam = make_exam()
    service = EnrollmentService(db, storage)
    service.enroll(exam.exam_id, USER_ID)

    with pytest.raises(PolicyViolationError):
        service.enroll(exam.exam_id, USER_ID, file_content=b"receipt", file_name="receipt.png")

    assert storage.uploads == []
    assert enrollment_count(db) == 1


def test_failed_insert_deletes_the_uploaded_proof(db, make_exam, storage):
    exam = make_exam()

    # a concurrent enrollment lands between the check and the insert
    def concurrent_enrollment():
        db.add(Enrollment(exam_id=exam.exam_id, user_id=USER_ID))
        db.flush()

    storage.on_upload = concurrent_enrollment

    with pytest.raises(CollaboratorError) as exc_info:
        EnrollmentService(db, storage).enroll(
            exam.exam_id, USER_ID, file_content=b"receipt", file_name="receipt.png",
        )

    assert exc_info.value.detail["error"]["message"] == "Failed to enrol in exam"
    assert exc_info.value.detail["error"]["details"]["error"]
    assert storage.deleted == [storage.uploads[0][0]]
    assert enrollment_count(db) == 1


def test_failed_cleanup_still_reports_the_insert_error(db, make_exam, storage):
    exam = make_exam()

    def concurrent_enrollment():
        db.add(Enrollment(exam_id=exam.exam_id, user_id=USER_ID))
        db.flush()

    storage.on_upload = concurrent_enrollment
    storage.fail_delete = True

    with pytest.raises(CollaboratorError) as exc_info:
        EnrollmentService(db, storage).enroll(
            exam.exam_id, USER_ID, file_content=b"receipt", file_name="receipt.png",
        )

    assert exc_info.value.detail["error"]["message"] == "Failed to enrol in exam"
    assert storage.deleted == []


def test_discard_without_asset_is_a_no_op(storage):
    discard_uploaded_asset(storage, None, "TEST")
    assert storage.deleted == []


def test_enroll_validates_input(db, storage):
    service = EnrollmentService(db, storage)

    with pytest.raises(ClientInputError):
        service.enroll(None, USER_ID)
    with pytest.raises(ClientInputError):
        service.enroll(1, None)
    with pytest.raises(NotFoundError):
        service.enroll(999, USER_ID)


def test_check_enrollment(db, make_exam, storage):
    exam = make_exam()
    service = EnrollmentService(db, storage)

    assert service.check_enrollment(exam.exam_id, USER_ID).enrolled is False

    service.enroll(exam.exam_id, USER_ID)
    check = service.check_enrollment(exam.exam_id, USER_ID)

    assert check.enrolled is True
    assert check.status == EnrollmentStatus.PENDING


def test_enrolled_exams_skip_deleted_exams(db, make_exam, storage):
    kept = make_exam(name="Chemistry")
    removed = make_exam(name="Biology")
    service = EnrollmentService(db, storage)
    service.enroll(kept.exam_id, USER_ID)
    service.enroll(removed.exam_id, USER_ID)
    service.enroll(kept.exam_id, USER_ID + 1)

    db.execute(Exam.__table__.delete().where(Exam.exam_id == removed.exam_id))

    exams = service.get_enrolled_exams(USER_ID)

    assert [e.name for e in exams] == ["Chemistry"]
    assert exams[0].enrollment_status == EnrollmentStatus.PENDING


def test_update_status(db, make_exam, storage):
    exam = make_exam()
    service = EnrollmentService(db, storage)
    service.enroll(exam.exam_id, USER_ID)

    updated = service.update_status(exam.exam_id, USER_ID, EnrollmentStatus.APPROVED)

    assert updated.status == EnrollmentStatus.APPROVED
    assert service.check_enrollment(exam.exam_id, USER_ID).status == EnrollmentStatus.APPROVED

    with pytest.raises(NotFoundError):
        service.update_status(exam.exam_id, USER_ID + 1, EnrollmentStatus.APPROVED)
