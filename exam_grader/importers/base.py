"""
Base classes for question import.

Defines the interface every importer implements, so a question bank can
be loaded from any supported file type into validated Question models.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, ClassVar, Iterable, Mapping

from pydantic import ValidationError

from exam_grader.models import Question

# Columns recognised in tabular question banks
QUESTION_COLUMNS: tuple[str, ...] = (
    "id",
    "question_text",
    "question_type",
    "marks",
    "correct_answer",
    "sample_code",
    "programming_language",
    "order_number",
)


class QuestionImportError(Exception):
    """
    Raised when a question file cannot be imported.

    Contains the file and, where known, the offending row.
    """

    def __init__(
        self,
        message: str,
        file_path: str | Path,
        row: int | None = None,
        cause: Exception | None = None,
    ):
        self.file_path = str(file_path)
        self.row = row
        self.cause = cause
        location = f"{file_path} (row {row})" if row is not None else str(file_path)
        super().__init__(f"Failed to import '{location}': {message}")


class QuestionImporter(ABC):
    """
    Abstract base class for question importers.

    All importers implement ``load`` and declare the file extensions they
    handle via ``SUPPORTED_EXTENSIONS``.
    """

    SUPPORTED_EXTENSIONS: ClassVar[tuple[str, ...]] = ()

    @classmethod
    def supports(cls, file_path: Path) -> bool:
        return file_path.suffix.lower() in cls.SUPPORTED_EXTENSIONS

    @abstractmethod
    def load(self, file_path: Path, exam_id: str | None = None) -> list[Question]:
        """
        Load questions from a file.

        Args:
            file_path: Path to the question bank file.
            exam_id: Exam the questions belong to; overrides any value in the file.

        Returns:
            Questions sorted by order_number.

        Raises:
            QuestionImportError: If the file can't be read or a row is invalid.
        """
        ...

    def _validate_file(self, file_path: Path) -> None:
        if not file_path.exists():
            raise QuestionImportError("File does not exist", file_path)

        if not file_path.is_file():
            raise QuestionImportError("Path is not a file", file_path)

        if not self.supports(file_path):
            raise QuestionImportError(
                f"Unsupported file format. Expected one of: {self.SUPPORTED_EXTENSIONS}",
                file_path,
            )

    def _build_questions(
        self,
        records: Iterable[Mapping[str, Any]],
        file_path: Path,
        exam_id: str | None,
        first_row: int = 1,
    ) -> list[Question]:
        """Validate raw records; blank cells become missing fields."""
        questions: list[Question] = []
        for row, record in enumerate(records, start=first_row):
            data = {
                key: value
                for key, value in record.items()
                if key in QUESTION_COLUMNS and not _is_blank(value)
            }
            if "order_number" not in data:
                data["order_number"] = len(questions) + 1
            if exam_id is not None:
                data["exam_id"] = exam_id
            try:
                questions.append(Question.model_validate(data))
            except ValidationError as e:
                raise QuestionImportError(str(e), file_path, row=row, cause=e) from e

        if not questions:
            raise QuestionImportError("File contains no questions", file_path)
        return sorted(questions, key=lambda q: q.order_number)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and value != value:  # NaN from pandas
        return True
    return isinstance(value, str) and not value.strip()
