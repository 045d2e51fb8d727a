from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.core.exceptions import ClientInputError, CollaboratorError, NotFoundError, PolicyViolationError
from app.models import Enrollment, ExamAccess, ExamResult, UserAttempt
from app.models.attempt import IN_PROGRESS, SUBMITTED
from app.schemas.submission import SubmitExamRequest
from app.services.attempt_store import AttemptRecordStore
from app.services.scoring import ScoreResult
from app.services.submission import SubmissionService, SubmissionStep, run_submission_steps

USER_ID = 42


def question_ids(exam):
    return [str(q.question_id) for q in exam.questions]


def count(db, model):
    return db.execute(select(func.count()).select_from(model)).scalar_one()


def answers_for(ids, selections):
    return {qid: {"selectedOption": option} for qid, option in zip(ids, selections)}


def _db_down(*args, **kwargs):
    raise OperationalError("INSERT", {}, Exception("database unavailable"))


class FailingAccessStore(AttemptRecordStore):
    def mark_access(self, exam_id, user_id, attempted):
        _db_down()


class FailingLogStore(AttemptRecordStore):
    def append_attempt_log(self, exam_id, user_id, answers):
        _db_down()


class FailingResultStore(AttemptRecordStore):
    def insert_result(self, *args, **kwargs):
        _db_down()


@pytest.fixture
def exam(make_exam):
    return make_exam(answers=("A", "B", "C", "D"), ques_mark=2)


@pytest.fixture
def ids(db, exam):
    return question_ids(exam)


def test_final_submission_writes_result_access_and_log(db, exam, ids):
    request = SubmitExamRequest(
        exam_id=exam.exam_id,
        user_id=USER_ID,
        answers=answers_for(ids, ["A", "B", "C", "A"]),
        time_taken=600,
        submission_status=SUBMITTED,
    )

    response = SubmissionService(db).submit(request)

    assert response.correct == 3
    assert response.incorrect == 1
    assert response.score == 6
    assert response.total == 8
    assert response.percentage == Decimal("75.00")
    assert response.passed is True
    assert response.submission_status == SUBMITTED
    assert response.exam_name == exam.name

    result = db.execute(select(ExamResult)).scalar_one()
    assert result.id == response.result_id
    assert result.user_id == USER_ID
    assert result.time_taken == 600
    assert result.percentage == Decimal("75.00")

    access = db.execute(select(ExamAccess)).scalar_one()
    assert access.attempted == SUBMITTED

    log = db.execute(select(UserAttempt)).scalar_one()
    assert log.answers[ids[0]]["correct"] is True
    assert log.answers[ids[3]]["correct"] is False
    assert log.answers[ids[3]]["selectedOption"] == "A"
    assert "savedAt" in log.answers[ids[0]]


def test_draft_does_not_write_a_result(db, exam, ids):
    request = SubmitExamRequest(
        exam_id=exam.exam_id,
        user_id=USER_ID,
        answers=answers_for(ids[:2], ["A", "B"]),
        submission_status=IN_PROGRESS,
    )

    response = SubmissionService(db).submit(request)

    assert response.result_id is None
    assert response.correct == 2
    assert count(db, ExamResult) == 0
    assert db.execute(select(ExamAccess)).scalar_one().attempted == IN_PROGRESS
    assert count(db, UserAttempt) == 1


def test_missing_status_is_a_draft(db, exam, ids):
    payload = {"exam_id": exam.exam_id, "user_id": USER_ID, "answers": answers_for(ids, ["A", "B", "C", "D"])}

    response = SubmissionService(db).submit(SubmitExamRequest.model_validate(payload))

    assert response.result_id is None
    assert response.submission_status is None
    assert response.percentage == Decimal("100.00")
    assert count(db, ExamResult) == 0
    assert db.execute(select(ExamAccess)).scalar_one().attempted is None
    assert count(db, UserAttempt) == 1


def test_client_saved_timestamp_is_kept(db, exam, ids):
    answers = {ids[0]: {"selectedOption": "A", "savedAt": "2026-10-01T09:00:00Z"}}
    request = SubmitExamRequest(exam_id=exam.exam_id, user_id=USER_ID, answers=answers, submission_status="draft")

    SubmissionService(db).submit(request)

    log = db.execute(select(UserAttempt)).scalar_one()
    assert log.answers[ids[0]]["savedAt"] == "2026-10-01T09:00:00Z"


def test_resubmission_adds_a_result_and_latest_wins(db, exam, ids):
    service = SubmissionService(db)
    first = service.submit(SubmitExamRequest(
        exam_id=exam.exam_id, user_id=USER_ID, answers=answers_for(ids, ["A", "A", "A", "A"]), submission_status=SUBMITTED,
    ))
    second = service.submit(SubmitExamRequest(
        exam_id=exam.exam_id, user_id=USER_ID, answers=answers_for(ids, ["A", "B", "C", "D"]), submission_status=SUBMITTED,
    ))

    assert count(db, ExamResult) == 2
    assert first.result_id != second.result_id

    latest = service.get_previous_result(exam.exam_id, USER_ID)
    assert latest.id == second.result_id
    assert latest.percentage == Decimal("100.00")
    assert latest.passed is True


def test_latest_result_uses_attempt_time(db, exam):
    store = AttemptRecordStore(db)
    now = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)
    newer = store.insert_result(
        exam.exam_id, USER_ID, ScoreResult(correct_count=1, incorrect_count=3, percentage=Decimal("25.00")),
        None, attempted_at=now,
    )
    store.insert_result(
        exam.exam_id, USER_ID, ScoreResult(correct_count=4, percentage=Decimal("100.00")),
        None, attempted_at=now - timedelta(days=1),
    )

    assert store.get_latest_result(exam.exam_id, USER_ID).id == newer.id


@pytest.mark.parametrize(
    "payload,message",
    [
        ({"user_id": USER_ID, "answers": {}}, "Exam ID required"),
        ({"exam_id": 1, "answers": {}}, "User ID required"),
        ({"exam_id": 1, "user_id": USER_ID}, "Answers required"),
    ],
)
def test_missing_fields_are_rejected_before_any_write(db, exam, payload, message):
    with pytest.raises(ClientInputError) as exc_info:
        SubmissionService(db).submit(SubmitExamRequest(**payload))

    assert exc_info.value.detail["error"]["message"] == message
    assert count(db, ExamResult) == 0
    assert count(db, ExamAccess) == 0
    assert count(db, UserAttempt) == 0


def test_unknown_exam(db):
    request = SubmitExamRequest(exam_id=999, user_id=USER_ID, answers={})

    with pytest.raises(NotFoundError):
        SubmissionService(db).submit(request)


def test_bookkeeping_failure_does_not_change_the_response(db, exam, ids):
    service = SubmissionService(db, store=FailingAccessStore(db))
    request = SubmitExamRequest(
        exam_id=exam.exam_id, user_id=USER_ID, answers=answers_for(ids, ["A", "B", "C", "A"]), submission_status=SUBMITTED,
    )

    response = service.submit(request)

    assert response.score == 6
    assert response.result_id is not None
    assert count(db, ExamResult) == 1
    assert count(db, ExamAccess) == 0
    # later steps still run
    assert count(db, UserAttempt) == 1


def test_attempt_log_failure_does_not_change_the_response(db, exam, ids):
    service = SubmissionService(db, store=FailingLogStore(db))
    request = SubmitExamRequest(
        exam_id=exam.exam_id, user_id=USER_ID, answers=answers_for(ids, ["A", "B", "C", "A"]), submission_status=SUBMITTED,
    )

    response = service.submit(request)

    assert response.score == 6
    assert response.percentage == Decimal("75.00")
    assert count(db, ExamResult) == 1
    assert db.execute(select(ExamAccess)).scalar_one().attempted == SUBMITTED
    assert count(db, UserAttempt) == 0


def test_result_write_failure_is_a_collaborator_error(db, exam, ids):
    service = SubmissionService(db, store=FailingResultStore(db))
    request = SubmitExamRequest(
        exam_id=exam.exam_id, user_id=USER_ID, answers=answers_for(ids, ["A"] * 4), submission_status=SUBMITTED,
    )

    with pytest.raises(CollaboratorError) as exc_info:
        service.submit(request)

    assert "database unavailable" in exc_info.value.detail["error"]["details"]["error"]
    assert count(db, UserAttempt) == 0


def test_run_submission_steps_reports_outcome():
    calls = []

    def ok():
        calls.append("ok")

    steps = [
        SubmissionStep("first", _db_down, essential=False),
        SubmissionStep("second", ok, essential=False),
    ]

    assert run_submission_steps(steps, "test") == {"first": False, "second": True}
    assert calls == ["ok"]


def test_previous_attempt_is_returned_in_question_order(db, exam, ids):
    answers = {
        ids[2]: {"selectedOption": "C"},
        ids[0]: {"selectedOption": "A"},
        ids[1]: {"selectedOption": "D"},
    }
    SubmissionService(db).submit(SubmitExamRequest(
        exam_id=exam.exam_id, user_id=USER_ID, answers=answers, submission_status=IN_PROGRESS,
    ))

    replay = SubmissionService(db).get_previous_attempt(exam.exam_id, USER_ID)

    assert [a.question_id for a in replay.answers] == ids[:3]
    assert [a.selected_option for a in replay.answers] == ["A", "D", "C"]
    assert replay.answers[0].question == "Question 1?"
    assert all(a.saved_at for a in replay.answers)


def test_previous_attempt_sorts_numerically(db, exam):
    store = AttemptRecordStore(db)
    store.append_attempt_log(exam.exam_id, USER_ID, {
        "10": {"selectedOption": "B"},
        "9": {"selectedOption": "A"},
        "100": {"selectedOption": "C"},
    })

    replay = SubmissionService(db).get_previous_attempt(exam.exam_id, USER_ID)

    assert [a.question_id for a in replay.answers] == ["9", "10", "100"]


def test_previous_attempt_and_result_missing(db, exam):
    service = SubmissionService(db)

    with pytest.raises(NotFoundError):
        service.get_previous_attempt(exam.exam_id, USER_ID)
    with pytest.raises(NotFoundError):
        service.get_previous_result(exam.exam_id, USER_ID)
    with pytest.raises(NotFoundError):
        service.get_result(12345)


def test_start_attempt_requires_enrollment(db, exam):
    with pytest.raises(PolicyViolationError):
        SubmissionService(db).start_attempt(exam.exam_id, USER_ID)


def test_start_attempt_hides_answers_and_marks_access(db, exam):
    db.add(Enrollment(exam_id=exam.exam_id, user_id=USER_ID))
    db.flush()

    paper = SubmissionService(db).start_attempt(exam.exam_id, USER_ID)

    assert paper.total_questions == 4
    assert paper.ques_mark == 2
    assert paper.attempted == IN_PROGRESS
    assert paper.questions[0].options == ["A", "B", "C", "D"]
    assert "correct" not in paper.questions[0].model_dump()


def test_start_attempt_keeps_submitted_marker(db, exam):
    db.add(Enrollment(exam_id=exam.exam_id, user_id=USER_ID))
    AttemptRecordStore(db).mark_access(exam.exam_id, USER_ID, SUBMITTED)

    paper = SubmissionService(db).start_attempt(exam.exam_id, USER_ID)

    assert paper.attempted == SUBMITTED
