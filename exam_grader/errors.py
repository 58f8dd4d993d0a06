"""
Error taxonomy for the grading core.

- InputError: malformed question or answer data, isolated to one question.
- DependencyError: the data store or the Code-Quality Grader failed.
- StateError: the submission is not in a state that allows grading, or
  another run has taken it over (ClaimLostError).
"""

from typing import Any


class GradingError(Exception):
    """Base class for all grading errors."""


class InputError(GradingError):
    """Raised when question or answer data is malformed."""


class UnsupportedQuestionType(InputError):
    """Raised when a question type has no scoring rule."""

    def __init__(self, question_type: Any):
        self.question_type = question_type
        super().__init__(f"Unsupported question type: {question_type!r}")


class InvalidAnswerError(InputError):
    """Raised when an answer has the wrong shape for its question type."""

    def __init__(self, question_id: str, message: str):
        self.question_id = question_id
        super().__init__(f"Question {question_id}: {message}")


class DependencyError(GradingError):
    """Raised when an external collaborator fails."""

    def __init__(self, message: str, cause: Exception | None = None, retryable: bool = False):
        self.cause = cause
        self.retryable = retryable
        super().__init__(message)


class StoreError(DependencyError):
    """Raised when a data store operation fails."""


class RecordNotFoundError(StoreError):
    """Raised when a requested exam or submission does not exist."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} not found: {record_id}")


class CodeGraderError(DependencyError):
    """Raised when the Code-Quality Grader cannot produce a trustworthy grade."""

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        retryable: bool = False,
        raw_response: str | None = None,
    ):
        self.raw_response = raw_response
        super().__init__(message, cause=cause, retryable=retryable)


class StateError(GradingError):
    """Raised when a submission cannot be claimed for grading."""

    def __init__(self, submission_id: str, status: Any, message: str | None = None):
        self.submission_id = submission_id
        self.status = status
        super().__init__(message or f"Submission {submission_id} cannot be graded while '{status}'")


class ClaimLostError(StateError):
    """Raised when a run writes to a submission another run has since reclaimed."""

    def __init__(self, submission_id: str, status: Any):
        super().__init__(
            submission_id,
            status,
            f"Submission {submission_id} is no longer held by this grading run (now '{status}')",
        )
