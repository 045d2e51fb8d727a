"""Scoring engine for multiple choice submissions.

Pure functions only: no database or network access. Answers are compared to
the stored correct option by content, never by index.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, NamedTuple

PASS_PERCENTAGE = Decimal("50")
ZERO_PERCENT = Decimal("0.00")
_TWO_PLACES = Decimal("0.01")


class AnswerKey(NamedTuple):
    """Question id and the content of its correct option."""

    question_id: int | str
    correct: str | None


@dataclass
class ScoreResult:
    """Aggregate outcome of scoring one submission."""

    correctness: dict[str, bool] = field(default_factory=dict)
    correct_count: int = 0
    incorrect_count: int = 0
    total_questions: int = 0
    score: int = 0
    total_marks: int = 0
    percentage: Decimal = ZERO_PERCENT
    passed: bool = False


def calculate_percentage(correct_count: int, total_questions: int) -> Decimal:
    """Percentage of correct answers rounded half-up to two decimals."""
    if total_questions == 0:
        return ZERO_PERCENT
    raw = Decimal(correct_count) / Decimal(total_questions) * 100
    return raw.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def is_passing(percentage: Decimal) -> bool:
    return percentage >= PASS_PERCENTAGE


def _selected_option(answer: Any) -> Any:
    if isinstance(answer, Mapping):
        return answer.get("selectedOption")
    return None


def is_answer_correct(selected: Any, correct: str | None) -> bool:
    if selected is None or correct is None:
        return False
    return str(selected) == str(correct)


def score_submission(
    questions: Iterable[AnswerKey],
    answers: Mapping[str, Any],
    ques_mark: int | None = None,
) -> ScoreResult:
    """
    Score submitted answers against an exam's answer keys.

    A question without a submitted answer counts as incorrect. Answers for
    question ids that are not part of the exam are ignored. ``ques_mark``
    defaults to 1 and applies uniformly to every question.
    """
    mark = ques_mark if ques_mark is not None else 1
    correctness: dict[str, bool] = {}

    for key in questions:
        question_id = str(key.question_id)
        answer = answers.get(question_id)
        correctness[question_id] = is_answer_correct(_selected_option(answer), key.correct)

    total_questions = len(correctness)
    correct_count = sum(1 for ok in correctness.values() if ok)
    percentage = calculate_percentage(correct_count, total_questions)

    return ScoreResult(
        correctness=correctness,
        correct_count=correct_count,
        incorrect_count=total_questions - correct_count,
        total_questions=total_questions,
        score=correct_count * mark,
        total_marks=total_questions * mark,
        percentage=percentage,
        passed=is_passing(percentage),
    )


def resolve_correct_option(options: Sequence[str], correct_option: Any) -> str | None:
    """
    Map the correct option given at ingestion to its content.

    An int, or a string holding an int, that indexes into ``options`` is
    replaced by that option's content. Anything else is taken to be the
    content already.
    """
    if correct_option is None:
        return None

    index: int | None = None
    if isinstance(correct_option, int) and not isinstance(correct_option, bool):
        index = correct_option
    elif isinstance(correct_option, str):
        try:
            index = int(correct_option.strip())
        except ValueError:
            index = None

    if index is not None and 0 <= index < len(options):
        return options[index]
    return str(correct_option)
