"""
Scoring strategy selection.

The orchestrator asks a ScoringStrategy for a grade and never needs to
know which scorer produced it. Coding questions can be routed to the
Code-Quality Grader; when that fails the configured fallback decides
between rescoring heuristically, recording a zero, or failing the run.
"""

import logging
from typing import Any, Mapping

from exam_grader.config import CodeGraderFallback, Settings, get_settings
from exam_grader.errors import CodeGraderError
from exam_grader.grading.base import QuestionScorer, is_missing
from exam_grader.grading.code_grader import CodeQualityGrader
from exam_grader.grading.heuristic import HeuristicScorer
from exam_grader.models import GradeResult, Question, QuestionType

logger = logging.getLogger(__name__)


class CodeQualityScorer:
    """
    Adapts the Code-Quality Grader to the QuestionScorer interface.

    Blank and non-text answers never reach the external service.
    """

    def __init__(
        self,
        grader: CodeQualityGrader,
        fallback_scorer: QuestionScorer,
        fallback: CodeGraderFallback = CodeGraderFallback.HEURISTIC,
    ):
        self._grader = grader
        self._fallback_scorer = fallback_scorer
        self._fallback = fallback

    def score(self, question: Question, answer: Any) -> GradeResult:
        if is_missing(answer) or not isinstance(answer, str):
            return self._fallback_scorer.score(question, answer)

        try:
            grade = self._grader.grade_code(question, answer)
        except CodeGraderError as e:
            return self._handle_failure(question, answer, e)

        return GradeResult(
            score=min(grade.score, question.marks),
            feedback=grade.feedback,
            strengths=grade.strengths,
            improvements=grade.improvements,
            graded_by="code_grader",
        )

    def _handle_failure(self, question: Question, answer: str, error: CodeGraderError) -> GradeResult:
        if self._fallback == CodeGraderFallback.FAIL:
            logger.warning("Code grader failed for question %s: %s", question.id, error)
            raise error

        if self._fallback == CodeGraderFallback.ZERO:
            logger.warning(
                "Code grader failed for question %s, recording zero: %s", question.id, error
            )
            return GradeResult(
                score=0,
                feedback=f"Automatic code grading unavailable ({error}); awaiting manual review.",
                graded_by="error",
            )

        logger.warning(
            "Code grader failed for question %s, using heuristic score: %s", question.id, error
        )
        return self._fallback_scorer.score(question, answer)


class ScoringStrategy:
    """
    Routes each question to the scorer registered for its type.

    Types without a dedicated scorer use the default scorer, which is
    responsible for rejecting types it does not know.
    """

    def __init__(
        self,
        default: QuestionScorer,
        overrides: Mapping[QuestionType, QuestionScorer] | None = None,
    ):
        self._default = default
        self._overrides: dict[QuestionType, QuestionScorer] = dict(overrides or {})

    def scorer_for(self, question: Question) -> QuestionScorer:
        if isinstance(question.question_type, QuestionType):
            return self._overrides.get(question.question_type, self._default)
        return self._default

    def score(self, question: Question, answer: Any) -> GradeResult:
        return self.scorer_for(question).score(question, answer)


def build_strategy(
    settings: Settings | None = None,
    use_code_grader: bool | None = None,
) -> ScoringStrategy:
    """
    Build the scoring strategy described by the settings.

    Args:
        settings: Configuration settings. Uses global settings if not provided.
        use_code_grader: Override ``settings.code_grader_enabled``.

    Returns:
        A ScoringStrategy; heuristic-only when the Code-Quality Grader is
        disabled or has no API key.
    """
    settings = settings or get_settings()
    heuristic = HeuristicScorer(settings.scoring)

    enabled = settings.code_grader_enabled if use_code_grader is None else use_code_grader
    if not enabled:
        return ScoringStrategy(heuristic)

    if not settings.groq_api_key:
        logger.warning("Code grader requested but no API key is configured; using heuristics")
        return ScoringStrategy(heuristic)

    code_scorer = CodeQualityScorer(
        grader=CodeQualityGrader(settings),
        fallback_scorer=heuristic,
        fallback=settings.code_grader_fallback,
    )
    return ScoringStrategy(heuristic, {QuestionType.CODING: code_scorer})


