"""Scorer interfaces."""

from typing import Any, Protocol

from exam_grader.models import GradeResult, Question

NO_ANSWER_FEEDBACK = "No answer provided."


class QuestionScorer(Protocol):
    """Scores one learner answer for one question."""

    def score(self, question: Question, answer: Any) -> GradeResult:
        """Return the grade for ``answer``; raise an InputError on malformed data."""
        ...


def is_missing(answer: Any) -> bool:
    """True when the learner left the question blank."""
    if answer is None:
        return True
    if isinstance(answer, str):
        return not answer.strip()
    if isinstance(answer, (dict, list, tuple)):
        return len(answer) == 0
    return False


def percent_of(marks: int, percent: int) -> int:
    """Whole-mark share of ``marks``, rounded down."""
    return marks * percent // 100
