"""
Base classes for submission storage.

Defines the abstract interface every store implements plus the claim rule
that makes concurrent grading triggers safe: a submission moves to
'processing' only through one conditional write.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, ClassVar, Iterable

from exam_grader.errors import ClaimLostError
from exam_grader.models import Exam, GradingStatus, Question, Submission

CLAIMABLE_STATUSES = frozenset({GradingStatus.UNGRADED, GradingStatus.FAILED})


def can_claim(submission: Submission, now: datetime, stale_after: timedelta) -> bool:
    """
    Decide whether a grading run may take this submission.

    'processing' rows are only reclaimable once their claim is older than
    ``stale_after``; a younger claim belongs to a run that is still going.
    """
    if submission.grading_status in CLAIMABLE_STATUSES:
        return True
    if submission.grading_status == GradingStatus.PROCESSING:
        started = submission.grading_started_at
        return started is None or now - started >= stale_after
    return False


class SubmissionStore(ABC):
    """
    Abstract data store for exams and submissions.

    Implementations must make ``claim_submission`` and ``update_submission``
    atomic with respect to other callers of the same store.
    """

    # Fields the grading core is allowed to change on a submission
    UPDATABLE_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"total_score", "max_score", "grading_status", "grade_details"}
    )

    @abstractmethod
    def save_exam(self, exam: Exam) -> None:
        """Insert or replace an exam and its questions."""
        ...

    @abstractmethod
    def get_exam(self, exam_id: str) -> Exam:
        """
        Load an exam.

        Raises:
            RecordNotFoundError: If the exam doesn't exist.
            StoreError: If the store can't be read.
        """
        ...

    def get_questions(self, exam_id: str) -> list[Question]:
        """Return the exam's question set in order."""
        exam = self.get_exam(exam_id)
        return sorted(exam.questions, key=lambda q: q.order_number)

    @abstractmethod
    def add_submission(self, submission: Submission) -> None:
        """
        Insert a new submission.

        Raises:
            StoreError: If a submission with the same id exists.
        """
        ...

    @abstractmethod
    def get_submission(self, submission_id: str) -> Submission:
        """
        Load one submission.

        Raises:
            RecordNotFoundError: If the submission doesn't exist.
        """
        ...

    @abstractmethod
    def find_submissions(self, statuses: Iterable[GradingStatus]) -> list[Submission]:
        """Return submissions in any of ``statuses``, most recently submitted first."""
        ...

    @abstractmethod
    def claim_submission(
        self, submission_id: str, now: datetime, stale_after: timedelta
    ) -> Submission | None:
        """
        Atomically move a claimable submission to 'processing'.

        Returns:
            The claimed submission, or None if another run owns it or it is
            already graded.

        Raises:
            RecordNotFoundError: If the submission doesn't exist.
        """
        ...

    @abstractmethod
    def update_submission(
        self, submission_id: str, *, claimed_at: datetime | None = None, **fields: Any
    ) -> Submission:
        """
        Apply one atomic write of grading fields.

        Args:
            submission_id: Submission to write.
            claimed_at: The ``grading_started_at`` of the caller's claim. When
                given, the write only happens while that claim still holds.
            **fields: Values for UPDATABLE_FIELDS.

        Raises:
            ValueError: If a field outside UPDATABLE_FIELDS is given.
            RecordNotFoundError: If the submission doesn't exist.
            ClaimLostError: If ``claimed_at`` no longer matches the row.
        """
        ...

    def _check_fields(self, fields: dict[str, Any]) -> None:
        unknown = set(fields) - self.UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable by the grader: {sorted(unknown)}")

    @staticmethod
    def _check_claim(submission: Submission, claimed_at: datetime | None) -> None:
        """Refuse a write from a run whose claim was taken over or released."""
        if claimed_at is None:
            return
        if (
            submission.grading_status != GradingStatus.PROCESSING
            or submission.grading_started_at != claimed_at
        ):
            raise ClaimLostError(submission.id, submission.grading_status.value)

    @staticmethod
    def _apply_update(submission: Submission, fields: dict[str, Any]) -> Submission:
        """Return a validated copy of ``submission`` with ``fields`` applied."""
        data = submission.model_dump()
        data.update(fields)
        if fields.get("grading_status") not in (None, GradingStatus.PROCESSING):
            data["grading_started_at"] = None
        return Submission.model_validate(data)

    @staticmethod
    def _apply_claim(submission: Submission, now: datetime) -> Submission:
        return submission.model_copy(
            update={"grading_status": GradingStatus.PROCESSING, "grading_started_at": now}
        )
