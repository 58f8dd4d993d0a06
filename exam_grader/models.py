"""
Pydantic models for the exam grader.

These models define the schemas for:
- Questions, exams and learner submissions
- Per-question grades and the aggregated grading outcome
- Code-Quality Grader replies and regrade sweep reports

Values passed between components are frozen; the data store hands out
fresh copies and mutations go through ``model_copy``.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ==============================================================================
# Enums
# ==============================================================================


class QuestionType(str, Enum):
    """The closed set of gradable question types."""

    MULTIPLE_CHOICE = "multiple_choice"
    CODING = "coding"
    FLOWCHART = "flowchart"
    SHORT_ANSWER = "short_answer"


class GradingStatus(str, Enum):
    """Grading lifecycle of a submission."""

    UNGRADED = "ungraded"
    PROCESSING = "processing"
    GRADED = "graded"
    FAILED = "failed"


GradedBy = Literal["heuristic", "code_grader", "error"]


# ==============================================================================
# Question Models
# ==============================================================================


class Question(BaseModel):
    """
    A single gradable question.

    Records with a type outside ``QuestionType`` still load (the raw string
    is kept) so the scorer can reject that one question explicitly.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)

    exam_id: str | None = Field(default=None)

    question_text: str = Field(default="")

    question_type: Annotated[
        Union[QuestionType, str], Field(union_mode="left_to_right")
    ] = Field(..., description="One of the QuestionType values")

    marks: int = Field(..., gt=0, description="Maximum score for this question")

    correct_answer: str | None = Field(
        default=None,
        description="Expected answer; used for multiple choice",
    )

    sample_code: str | None = Field(
        default=None,
        description="Reference solution passed to the Code-Quality Grader",
    )

    programming_language: str | None = Field(default=None)

    order_number: int = Field(default=0)

    @field_validator("id", "exam_id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Accept numeric identifiers from spreadsheets and JSON."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("question_type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        if isinstance(v, str) and not isinstance(v, QuestionType):
            return v.strip().lower()
        return v

    @field_validator("correct_answer", mode="before")
    @classmethod
    def coerce_correct_answer(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("programming_language")
    @classmethod
    def normalize_language(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip().lower()
        return v or None


class Exam(BaseModel):
    """An exam and its ordered question set."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    title: str = Field(default="")
    questions: tuple[Question, ...] = Field(default=())

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "Exam":
        """Ensure no duplicate question ids."""
        ids = [q.id for q in self.questions]
        if len(ids) != len(set(ids)):
            duplicates = {i for i in ids if ids.count(i) > 1}
            raise ValueError(f"Duplicate question ids found: {duplicates}")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_marks(self) -> int:
        return sum(q.marks for q in self.questions)


# ==============================================================================
# Grade Models
# ==============================================================================


class GradeResult(BaseModel):
    """
    The score and feedback produced for one question.

    Scores are whole marks; scorers floor fractional marks before
    building a result.
    """

    model_config = ConfigDict(frozen=True, strict=True)

    score: int = Field(..., ge=0)
    feedback: str = Field(..., min_length=1)
    strengths: tuple[str, ...] = Field(default=())
    improvements: tuple[str, ...] = Field(default=())
    graded_by: GradedBy = Field(default="heuristic")


class QuestionGrade(BaseModel):
    """One entry of a submission's grade details."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0)
    max_score: int = Field(..., gt=0)
    feedback: str = Field(default="")
    question_type: str = Field(default="")
    graded_by: GradedBy = Field(default="heuristic")
    strengths: tuple[str, ...] = Field(default=())
    improvements: tuple[str, ...] = Field(default=())

    @model_validator(mode="after")
    def validate_score_range(self) -> "QuestionGrade":
        """Ensure the score doesn't exceed the question's marks."""
        if self.score > self.max_score:
            raise ValueError(
                f"Score ({self.score}) cannot exceed max score ({self.max_score})"
            )
        return self

    @classmethod
    def from_result(cls, question: Question, result: GradeResult) -> "QuestionGrade":
        if result.score > question.marks:
            raise ValueError(
                f"Score ({result.score}) for question {question.id} exceeds its marks ({question.marks})"
            )
        return cls(
            score=result.score,
            max_score=question.marks,
            feedback=result.feedback,
            question_type=_type_value(question.question_type),
            graded_by=result.graded_by,
            strengths=result.strengths,
            improvements=result.improvements,
        )


def _type_value(question_type: QuestionType | str) -> str:
    if isinstance(question_type, QuestionType):
        return question_type.value
    return str(question_type)


class CodeGrade(BaseModel):
    """A validated reply from the Code-Quality Grader."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0)
    feedback: str = Field(..., min_length=1)
    strengths: tuple[str, ...] = Field(default=())
    improvements: tuple[str, ...] = Field(default=())


# ==============================================================================
# Submission Models
# ==============================================================================


class Submission(BaseModel):
    """
    A learner's answers for one exam attempt plus its grading fields.

    Only the Orchestrator changes the grading fields; everything else is
    written once when the learner submits.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    exam_id: str = Field(..., min_length=1)

    student_name: str = Field(default="")
    student_email: str | None = Field(default=None)

    answers: dict[str, Any] = Field(default_factory=dict)

    submitted_at: datetime = Field(default_factory=utcnow)
    time_taken_seconds: int | None = Field(default=None, ge=0)

    grading_status: GradingStatus = Field(default=GradingStatus.UNGRADED)
    grading_started_at: datetime | None = Field(default=None)

    total_score: int | None = Field(default=None, ge=0)
    max_score: int | None = Field(default=None, ge=0)
    grade_details: dict[str, QuestionGrade] = Field(default_factory=dict)

    @field_validator("id", "exam_id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("submitted_at", "grading_started_at")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        """Naive timestamps are stored as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @field_validator("answers", mode="before")
    @classmethod
    def coerce_answer_keys(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {str(k): answer for k, answer in v.items()}
        return v

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_graded(self) -> bool:
        return self.grading_status == GradingStatus.GRADED


# ==============================================================================
# Outcome Models
# ==============================================================================


class GradingOutcome(BaseModel):
    """What a grading run reports back to its caller."""

    model_config = ConfigDict(frozen=True)

    submission_id: str
    status: GradingStatus
    total_score: int = Field(default=0, ge=0)
    max_score: int = Field(default=0, ge=0)
    grade_details: dict[str, QuestionGrade] = Field(default_factory=dict)
    weak_areas: tuple[str, ...] = Field(default=())
    study_recommendations: tuple[str, ...] = Field(default=())
    error: str | None = Field(default=None)
    skipped: bool = Field(
        default=False,
        description="True when the submission could not be claimed",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def percentage(self) -> int:
        """Overall percentage, rounded to a whole number."""
        if self.max_score == 0:
            return 0
        return round(self.total_score / self.max_score * 100)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def succeeded(self) -> bool:
        return self.status == GradingStatus.GRADED and not self.skipped


class RegradeFailure(BaseModel):
    """A submission the regrade sweep could not grade."""

    model_config = ConfigDict(frozen=True)

    submission_id: str
    reason: str


class RegradeReport(BaseModel):
    """Summary of one regrade sweep."""

    model_config = ConfigDict(frozen=True)

    success: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)
    failures: tuple[RegradeFailure, ...] = Field(default=())

    @model_validator(mode="after")
    def validate_counts(self) -> "RegradeReport":
        if self.success + self.failed + self.skipped != self.total:
            raise ValueError(
                f"Counts don't add up: {self.success} + {self.failed} + {self.skipped} != {self.total}"
            )
        return self
