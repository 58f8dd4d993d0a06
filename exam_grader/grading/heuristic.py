"""
Heuristic scorer.

Scores answers from surface features only (line counts, word counts,
structure present or not). The policy is lenient and every
threshold comes from ``ScoringPolicy`` so it can change without code edits.
"""

import json
from typing import Any, Callable

from exam_grader.config import ScoringPolicy
from exam_grader.errors import InvalidAnswerError, UnsupportedQuestionType
from exam_grader.grading.base import NO_ANSWER_FEEDBACK, is_missing, percent_of
from exam_grader.models import GradeResult, Question, QuestionType


class HeuristicScorer:
    """
    Default, external-call-free scorer.

    Rules per question type:
    1. multiple_choice: trimmed, case-insensitive match against the correct answer
    2. coding: more than N non-blank lines earns the full percentage
    3. flowchart: a structured answer earns the complete percentage
    4. short_answer: at least N words earns the full percentage
    """

    def __init__(self, policy: ScoringPolicy | None = None):
        self._policy = policy or ScoringPolicy()
        self._rules: dict[QuestionType, Callable[[Question, Any], GradeResult]] = {
            QuestionType.MULTIPLE_CHOICE: self._score_multiple_choice,
            QuestionType.CODING: self._score_coding,
            QuestionType.FLOWCHART: self._score_flowchart,
            QuestionType.SHORT_ANSWER: self._score_short_answer,
        }

    @property
    def policy(self) -> ScoringPolicy:
        return self._policy

    def score(self, question: Question, answer: Any) -> GradeResult:
        """
        Score a single answer.

        Args:
            question: The question being answered.
            answer: The learner's raw answer (None when absent).

        Returns:
            GradeResult with a score in [0, question.marks].

        Raises:
            UnsupportedQuestionType: If the question type has no rule.
            InvalidAnswerError: If the answer has the wrong shape.
        """
        rule = self._rules.get(question.question_type)  # type: ignore[call-overload]
        if rule is None:
            raise UnsupportedQuestionType(question.question_type)

        if is_missing(answer):
            return GradeResult(score=0, feedback=NO_ANSWER_FEEDBACK)

        result = rule(question, answer)
        return self._clamp(result, question.marks)

    def _score_multiple_choice(self, question: Question, answer: Any) -> GradeResult:
        if question.correct_answer is None or not question.correct_answer.strip():
            raise InvalidAnswerError(question.id, "multiple choice question has no correct answer")
        if isinstance(answer, (dict, list, tuple, bool)):
            raise InvalidAnswerError(
                question.id, f"expected a single option, got {type(answer).__name__}"
            )

        expected = question.correct_answer.strip().lower()
        given = str(answer).strip().lower()

        if given == expected:
            return GradeResult(score=question.marks, feedback="Correct answer!")
        return GradeResult(
            score=0,
            feedback=f"Incorrect. The correct answer was: {question.correct_answer.strip()}",
        )

    def _score_coding(self, question: Question, answer: Any) -> GradeResult:
        code = self._require_text(question, answer)
        lines = [line for line in code.splitlines() if line.strip()]

        if len(lines) > self._policy.coding_min_lines:
            return GradeResult(
                score=percent_of(question.marks, self._policy.coding_full_percent),
                feedback="Good coding attempt with proper structure",
            )
        return GradeResult(
            score=percent_of(question.marks, self._policy.coding_partial_percent),
            feedback="Code needs more development and detail.",
        )

    def _score_flowchart(self, question: Question, answer: Any) -> GradeResult:
        if self._is_structured(answer):
            return GradeResult(
                score=percent_of(question.marks, self._policy.flowchart_complete_percent),
                feedback="Flowchart created successfully",
            )
        return GradeResult(
            score=percent_of(question.marks, self._policy.flowchart_incomplete_percent),
            feedback="Flowchart incomplete or missing.",
        )

    def _score_short_answer(self, question: Question, answer: Any) -> GradeResult:
        text = self._require_text(question, answer)
        word_count = len(text.split())

        if word_count >= self._policy.short_answer_min_words:
            return GradeResult(
                score=percent_of(question.marks, self._policy.short_answer_full_percent),
                feedback="Good detailed answer",
            )
        return GradeResult(
            score=percent_of(question.marks, self._policy.short_answer_partial_percent),
            feedback="Answer is brief; add more explanation and detail.",
        )

    @staticmethod
    def _require_text(question: Question, answer: Any) -> str:
        """Numbers are read as their text; mappings, sequences and booleans are rejected."""
        if isinstance(answer, (int, float)) and not isinstance(answer, bool):
            return str(answer)
        if not isinstance(answer, str):
            raise InvalidAnswerError(
                question.id, f"expected text, got {type(answer).__name__}"
            )
        return answer

    @staticmethod
    def _is_structured(answer: Any) -> bool:
        """
        Flowcharts are saved either as objects or as their JSON encoding.

        Only a mapping or a sequence counts as structured.
        """
        if isinstance(answer, (dict, list, tuple)):
            return True
        if isinstance(answer, str):
            try:
                decoded = json.loads(answer)
            except json.JSONDecodeError:
                return False
            return isinstance(decoded, (dict, list)) and len(decoded) > 0
        return False

    @staticmethod
    def _clamp(result: GradeResult, marks: int) -> GradeResult:
        if result.score <= marks:
            return result
        return result.model_copy(update={"score": marks})
