"""
Grading engine - the submission orchestrator.

Drives one submission through its grading lifecycle:

    ungraded/failed --claim--> processing --commit--> graded
                                          \\--error--> failed

The claim is a conditional write so two triggers can't grade the same
submission at once, and the commit writes totals, details and status in
one update so a crash never leaves a half-graded row.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Mapping

from pydantic import ValidationError

from exam_grader.config import Settings, get_settings
from exam_grader.errors import (
    ClaimLostError,
    DependencyError,
    GradingError,
    InputError,
    StateError,
    StoreError,
)
from exam_grader.grading.base import is_missing
from exam_grader.grading.strategy import ScoringStrategy, build_strategy
from exam_grader.models import (
    GradingOutcome,
    GradingStatus,
    Question,
    QuestionGrade,
    QuestionType,
    Submission,
    utcnow,
)
from exam_grader.notify import GradeNotification, Notifier
from exam_grader.store.base import SubmissionStore

logger = logging.getLogger(__name__)

STUDY_RECOMMENDATIONS: dict[QuestionType, str] = {
    QuestionType.MULTIPLE_CHOICE: "Review theory concepts and practice more MCQs",
    QuestionType.CODING: "Practice coding exercises on platforms like LeetCode or HackerRank",
    QuestionType.FLOWCHART: "Study algorithm design and practice creating flowcharts",
    QuestionType.SHORT_ANSWER: "Read more about the topics and practice explaining concepts",
}


class GradingOrchestrator:
    """
    Grades whole submissions against their exam's question set.

    Per-question problems are isolated into a zero grade; per-submission
    problems end in a 'failed' status. ``grade_submission`` always returns
    a GradingOutcome and never raises.
    """

    def __init__(
        self,
        store: SubmissionStore,
        settings: Settings | None = None,
        strategy: ScoringStrategy | None = None,
        notifier: Notifier | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the orchestrator.

        Args:
            store: Data store holding exams and submissions.
            settings: Configuration settings. Uses global settings if not provided.
            strategy: Scoring strategy. Built from settings if not provided.
            notifier: Receives a GradeNotification after each successful commit.
            clock: Source of the current time (UTC).
        """
        self._settings = settings or get_settings()
        self._store = store
        self._strategy = strategy or build_strategy(self._settings)
        self._notifier = notifier
        self._clock = clock
        self._stale_after = timedelta(seconds=self._settings.processing_stale_after_seconds)

    def grade(self, submission: Submission) -> GradingOutcome:
        """Grade a stored submission using its own answers."""
        return self.grade_submission(submission.id, submission.exam_id)

    def grade_submission(
        self,
        submission_id: str,
        exam_id: str | None = None,
        answers: Mapping[str, Any] | None = None,
        questions: Iterable[Question | Mapping[str, Any]] | None = None,
    ) -> GradingOutcome:
        """
        Grade one submission end to end.

        Args:
            submission_id: Submission to grade.
            exam_id: Exam whose questions apply. Defaults to the submission's exam.
            answers: Answers keyed by question id. Defaults to the stored answers.
            questions: Question set to grade against. Loaded from the store if None.

        Returns:
            GradingOutcome. ``skipped`` is set when the submission was already
            graded or is being graded by another run.
        """
        now = self._clock()
        try:
            claimed = self._store.claim_submission(submission_id, now, self._stale_after)
        except StoreError as e:
            logger.error("Could not claim submission %s: %s", submission_id, e)
            return GradingOutcome(
                submission_id=submission_id, status=GradingStatus.FAILED, error=str(e)
            )

        if claimed is None:
            return self._refused(submission_id)

        exam_id = exam_id or claimed.exam_id
        if answers is None:
            answers = claimed.answers
        logger.info("Grading submission %s for exam %s", submission_id, exam_id)

        try:
            question_set = self._load_questions(exam_id, questions)
            details, total_score, max_score = self._score_all(question_set, answers)
            committed = self._store.update_submission(
                submission_id,
                claimed_at=claimed.grading_started_at,
                total_score=total_score,
                max_score=max_score,
                grading_status=GradingStatus.GRADED,
                grade_details=details,
            )
        except ClaimLostError as e:
            logger.warning("Discarding result for submission %s: %s", submission_id, e)
            return self._refused(submission_id, e)
        except GradingError as e:
            return self._fail(submission_id, e, claimed.grading_started_at)
        except Exception as e:
            logger.exception("Unexpected error grading submission %s", submission_id)
            return self._fail(submission_id, e, claimed.grading_started_at)

        logger.info(
            "Graded submission %s: %d/%d", submission_id, total_score, max_score
        )

        weak_areas = self._weak_areas(question_set, answers, details)
        outcome = GradingOutcome(
            submission_id=submission_id,
            status=GradingStatus.GRADED,
            total_score=total_score,
            max_score=max_score,
            grade_details=details,
            weak_areas=tuple(a.value for a in weak_areas),
            study_recommendations=tuple(STUDY_RECOMMENDATIONS[a] for a in weak_areas),
        )

        self._notify(committed, exam_id)
        return outcome

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _refused(self, submission_id: str, error: StateError | None = None) -> GradingOutcome:
        try:
            current = self._store.get_submission(submission_id)
        except StoreError as e:
            return GradingOutcome(
                submission_id=submission_id, status=GradingStatus.FAILED, error=str(e)
            )

        if error is None:
            error = StateError(submission_id, current.grading_status.value)
        logger.info("Skipping submission %s: %s", submission_id, error)
        return GradingOutcome(
            submission_id=submission_id,
            status=current.grading_status,
            total_score=current.total_score or 0,
            max_score=current.max_score or 0,
            grade_details=current.grade_details,
            error=str(error),
            skipped=True,
        )

    def _load_questions(
        self,
        exam_id: str,
        questions: Iterable[Question | Mapping[str, Any]] | None,
    ) -> list[Question]:
        if questions is None:
            question_set = self._store.get_questions(exam_id)
        else:
            question_set = [self._coerce_question(q) for q in questions]

        if not question_set:
            raise InputError(f"No questions found for exam {exam_id}")

        ids = [q.id for q in question_set]
        if len(ids) != len(set(ids)):
            raise InputError(f"Exam {exam_id} has duplicate question ids")
        return question_set

    @staticmethod
    def _coerce_question(question: Question | Mapping[str, Any]) -> Question:
        if isinstance(question, Question):
            return question
        try:
            return Question.model_validate(question)
        except ValidationError as e:
            raise InputError(f"Invalid question {question.get('id')!r}: {e}") from e

    def _score_all(
        self, questions: list[Question], answers: Mapping[str, Any]
    ) -> tuple[dict[str, QuestionGrade], int, int]:
        """
        Score every question exactly once.

        Returns:
            Tuple of (grade details, total score, max score).
        """
        details: dict[str, QuestionGrade] = {}
        total_score = 0
        max_score = 0

        for question in questions:
            max_score += question.marks
            answer = answers.get(question.id)
            try:
                result = self._strategy.score(question, answer)
                grade = QuestionGrade.from_result(question, result)
            except DependencyError:
                raise
            except Exception as e:
                logger.warning("Question %s could not be graded: %s", question.id, e)
                grade = QuestionGrade(
                    score=0,
                    max_score=question.marks,
                    feedback=f"Could not grade this question: {e}",
                    question_type=str(getattr(question.question_type, "value", question.question_type)),
                    graded_by="error",
                )

            logger.debug("Question %s: %d/%d", question.id, grade.score, grade.max_score)
            details[question.id] = grade
            total_score += grade.score

        return details, total_score, max_score

    def _weak_areas(
        self,
        questions: list[Question],
        answers: Mapping[str, Any],
        details: Mapping[str, QuestionGrade],
    ) -> list[QuestionType]:
        threshold = self._settings.scoring.weak_area_percent
        areas: list[QuestionType] = []
        for question in questions:
            if not isinstance(question.question_type, QuestionType):
                continue
            grade = details[question.id]
            blank = is_missing(answers.get(question.id))
            if blank or grade.score * 100 < threshold * grade.max_score:
                if question.question_type not in areas:
                    areas.append(question.question_type)
        return areas

    def _fail(
        self, submission_id: str, error: Exception, claimed_at: datetime | None
    ) -> GradingOutcome:
        """Record a failed run; the row keeps no partial scores."""
        logger.error("Grading failed for submission %s: %s", submission_id, error)
        try:
            self._store.update_submission(
                submission_id, claimed_at=claimed_at, grading_status=GradingStatus.FAILED
            )
        except ClaimLostError as e:
            # Another run reclaimed the submission; its state stands
            logger.warning("Not marking submission %s as failed: %s", submission_id, e)
            return self._refused(submission_id, e)
        except StoreError as e:
            # Left in 'processing'; the sweeper reclaims it once the claim is stale
            logger.error("Could not mark submission %s as failed: %s", submission_id, e)
        return GradingOutcome(
            submission_id=submission_id,
            status=GradingStatus.FAILED,
            error=str(error),
        )

    def _notify(self, submission: Submission, exam_id: str) -> None:
        if self._notifier is None or not submission.student_email:
            return
        try:
            exam_title = self._store.get_exam(exam_id).title or exam_id
        except StoreError:
            exam_title = exam_id

        try:
            notification = GradeNotification(
                student_name=submission.student_name,
                student_email=submission.student_email,
                exam_title=exam_title,
                total_score=submission.total_score or 0,
                max_score=submission.max_score or 0,
                grade_details=submission.grade_details,
            )
            self._notifier.send(notification)
        except Exception:
            logger.exception("Failed to send grade notification for %s", submission.id)
