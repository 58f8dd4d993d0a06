"""In-process store, used by tests and by callers that embed the grader."""

import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Iterable

from exam_grader.errors import RecordNotFoundError, StoreError
from exam_grader.models import Exam, GradingStatus, Submission
from exam_grader.store.base import SubmissionStore, can_claim

logger = logging.getLogger(__name__)


class InMemoryStore(SubmissionStore):
    """Dictionary-backed store guarded by a single lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._exams: dict[str, Exam] = {}
        self._submissions: dict[str, Submission] = {}

    def save_exam(self, exam: Exam) -> None:
        with self._lock:
            self._exams[exam.id] = exam

    def get_exam(self, exam_id: str) -> Exam:
        with self._lock:
            exam = self._exams.get(exam_id)
        if exam is None:
            raise RecordNotFoundError("Exam", exam_id)
        return exam

    def add_submission(self, submission: Submission) -> None:
        with self._lock:
            if submission.id in self._submissions:
                raise StoreError(f"Submission already exists: {submission.id}")
            self._submissions[submission.id] = submission

    def get_submission(self, submission_id: str) -> Submission:
        with self._lock:
            submission = self._submissions.get(submission_id)
        if submission is None:
            raise RecordNotFoundError("Submission", submission_id)
        return submission

    def find_submissions(self, statuses: Iterable[GradingStatus]) -> list[Submission]:
        wanted = set(statuses)
        with self._lock:
            matches = [s for s in self._submissions.values() if s.grading_status in wanted]
        return sorted(matches, key=lambda s: s.submitted_at, reverse=True)

    def claim_submission(
        self, submission_id: str, now: datetime, stale_after: timedelta
    ) -> Submission | None:
        with self._lock:
            submission = self._submissions.get(submission_id)
            if submission is None:
                raise RecordNotFoundError("Submission", submission_id)
            if not can_claim(submission, now, stale_after):
                return None
            claimed = self._apply_claim(submission, now)
            self._submissions[submission_id] = claimed
        logger.debug("Claimed submission %s", submission_id)
        return claimed

    def update_submission(
        self, submission_id: str, *, claimed_at: datetime | None = None, **fields: Any
    ) -> Submission:
        self._check_fields(fields)
        with self._lock:
            submission = self._submissions.get(submission_id)
            if submission is None:
                raise RecordNotFoundError("Submission", submission_id)
            self._check_claim(submission, claimed_at)
            updated = self._apply_update(submission, fields)
            self._submissions[submission_id] = updated
        return updated
