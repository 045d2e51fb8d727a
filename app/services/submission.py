"""Exam submission orchestration: scoring, result ledger and attempt bookkeeping."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import ClientInputError, CollaboratorError, NotFoundError, PolicyViolationError
from app.models.attempt import IN_PROGRESS, SUBMITTED, ExamResult
from app.models.base import utcnow
from app.schemas.submission import (
    ExamResultResponse,
    PreviousAttemptResponse,
    QuestionPaperItem,
    ReplayAnswer,
    StartAttemptResponse,
    SubmitExamRequest,
    SubmitExamResponse,
)
from app.services.attempt_store import AttemptRecordStore
from app.services.enrollment import EnrollmentService
from app.services.scoring import is_passing, score_submission

logger = logging.getLogger(__name__)


@dataclass
class SubmissionStep:
    """One write of a submission.

    Essential steps propagate their failure. Non-essential steps are
    bookkeeping: a failure is logged and the remaining steps still run.
    """

    name: str
    action: Callable[[], Any]
    essential: bool = True


def run_submission_steps(steps: list[SubmissionStep], context: str) -> dict[str, bool]:
    """Run steps in order and report which ones succeeded."""
    outcome: dict[str, bool] = {}
    for step in steps:
        try:
            step.action()
            outcome[step.name] = True
        except SQLAlchemyError as e:
            if step.essential:
                logger.error(f"[SUBMIT] {step.name} failed for {context}: {e}")
                raise CollaboratorError(f"Failed to {step.name.replace('_', ' ')}", error=str(e))
            logger.exception(f"[SUBMIT] {step.name} failed for {context}, continuing")
            outcome[step.name] = False
        except Exception:
            if step.essential:
                raise
            logger.exception(f"[SUBMIT] {step.name} failed for {context}, continuing")
            outcome[step.name] = False
    return outcome


def _question_sort_key(question_id: str) -> tuple[int, int | str]:
    if question_id.isdigit():
        return (0, int(question_id))
    return (1, question_id)


class SubmissionService:
    """Exam submission and resume service."""

    def __init__(self, db: Session, store: AttemptRecordStore | None = None):
        self.db = db
        self.store = store or AttemptRecordStore(db)

    def _result_to_response(self, record: ExamResult) -> ExamResultResponse:
        return ExamResultResponse(
            id=record.id,
            exam_id=record.exam_id,
            user_id=record.user_id,
            correct=record.correct,
            incorrect=record.incorrect,
            score=record.score,
            percentage=record.percentage,
            passed=is_passing(record.percentage),
            time_taken=record.time_taken,
            attempted_at=record.attempted_at,
        )

    # ==========================================
    # Submit
    # ==========================================

    def submit(self, request: SubmitExamRequest) -> SubmitExamResponse:
        """
        Score a submission and record it.

        Only a final submission (``submission_status == "submitted"``) writes
        a result row; a missing status is a draft. The access marker takes
        the status as received. It and the attempt log are written for every
        submission on a best-effort basis; their failure never changes the
        response.
        """
        if request.exam_id is None:
            raise ClientInputError("Exam ID required")
        if request.user_id is None:
            raise ClientInputError("User ID required")
        if request.answers is None:
            raise ClientInputError("Answers required")

        exam_id = request.exam_id
        user_id = request.user_id
        answers = request.answers
        mode = request.submission_status
        context = f"exam={exam_id} user={user_id} mode={mode}"

        logger.info(f"[SUBMIT] Received {context}, {len(answers)} answers")

        exam = self.store.get_exam(exam_id)
        if not exam:
            raise NotFoundError("Exam", str(exam_id))
        answer_keys = self.store.get_answer_keys(exam_id)

        score = score_submission(answer_keys, answers, exam.ques_mark)

        # The log keeps correctness alongside the raw selection
        saved_at = utcnow().isoformat()
        for question_id, answer in answers.items():
            answer["correct"] = score.correctness.get(question_id, False)
            answer.setdefault("savedAt", saved_at)

        saved: dict[str, ExamResult] = {}

        def save_result() -> None:
            saved["result"] = self.store.insert_result(
                exam_id, user_id, score, request.time_taken
            )

        steps: list[SubmissionStep] = []
        if mode == SUBMITTED:
            steps.append(SubmissionStep("save_result", save_result, essential=True))
        steps.append(
            SubmissionStep(
                "update_access",
                lambda: self.store.mark_access(exam_id, user_id, mode),
                essential=False,
            )
        )
        steps.append(
            SubmissionStep(
                "log_attempt",
                lambda: self.store.append_attempt_log(exam_id, user_id, answers),
                essential=False,
            )
        )

        outcome = run_submission_steps(steps, context)
        logger.info(
            f"[SUBMIT] Done {context}: {score.correct_count}/{score.total_questions} correct, "
            f"{score.percentage}%, steps={outcome}"
        )

        result = saved.get("result")
        return SubmitExamResponse(
            exam_name=exam.name,
            exam_type=exam.type,
            score=score.score,
            total=score.total_marks,
            correct=score.correct_count,
            incorrect=score.incorrect_count,
            total_questions=score.total_questions,
            percentage=score.percentage,
            passed=score.passed,
            submission_status=mode,
            result_id=result.id if result else None,
        )

    # ==========================================
    # Results and resume
    # ==========================================

    def get_result(self, result_id: int) -> ExamResultResponse:
        record = self.store.get_result(result_id)
        if not record:
            raise NotFoundError("Result", str(result_id))
        return self._result_to_response(record)

    def get_previous_result(self, exam_id: int, user_id: int) -> ExamResultResponse:
        """Latest graded result for the pair."""
        record = self.store.get_latest_result(exam_id, user_id)
        if not record:
            raise NotFoundError("Result", f"{exam_id}/{user_id}")
        return self._result_to_response(record)

    def get_previous_attempt(self, exam_id: int, user_id: int) -> PreviousAttemptResponse:
        """Latest attempt log as an ordered answer list for client replay."""
        log = self.store.get_latest_attempt_log(exam_id, user_id)
        if not log:
            raise NotFoundError("Attempt", f"{exam_id}/{user_id}")

        question_text = {
            str(q.question_id): q.question for q in self.store.get_exam_questions(exam_id)
        }
        entries = log.answers or {}

        answers = []
        for question_id in sorted(entries, key=_question_sort_key):
            entry = entries[question_id] or {}
            answers.append(
                ReplayAnswer(
                    question_id=question_id,
                    question=question_text.get(question_id),
                    selected_option=entry.get("selectedOption"),
                    saved_at=entry.get("savedAt"),
                )
            )

        return PreviousAttemptResponse(
            attempt_id=log.id,
            exam_id=log.exam_id,
            user_id=log.user_id,
            created_at=log.created_at,
            answers=answers,
        )

    # ==========================================
    # Start
    # ==========================================

    def start_attempt(self, exam_id: int, user_id: int) -> StartAttemptResponse:
        """
        Open an exam for an enrolled student.

        Returns the question paper without answers and marks the access
        record as in progress unless the attempt was already submitted.
        """
        exam = self.store.get_exam(exam_id)
        if not exam:
            raise NotFoundError("Exam", str(exam_id))

        enrollment = EnrollmentService(self.db).get_enrollment(exam_id, user_id)
        if not enrollment:
            raise PolicyViolationError("You are not enrolled in this exam")

        access = self.store.get_access(exam_id, user_id)
        if access is None or access.attempted != SUBMITTED:
            try:
                access = self.store.mark_access(exam_id, user_id, IN_PROGRESS)
            except SQLAlchemyError:
                logger.exception(f"[START] Failed to mark access for exam={exam_id} user={user_id}")

        questions = self.store.get_exam_questions(exam_id)
        return StartAttemptResponse(
            exam_id=exam.exam_id,
            name=exam.name,
            description=exam.description,
            type=exam.type,
            duration=exam.duration,
            start_date=exam.start_date,
            end_date=exam.end_date,
            ques_mark=exam.mark_per_question,
            total_questions=len(questions),
            attempted=access.attempted if access else None,
            questions=[
                QuestionPaperItem(
                    question_id=q.question_id,
                    question=q.question,
                    options=[str(o) for o in (q.options or [])],
                    image_url=q.image_url,
                )
                for q in questions
            ],
        )
