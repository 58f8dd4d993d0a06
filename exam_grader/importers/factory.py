"""
Importer factory module.

Selects the importer for a file by extension, with a convenience function
that imports in one step.
"""

from pathlib import Path

from exam_grader.importers.base import QuestionImporter, QuestionImportError
from exam_grader.importers.json_importer import JsonQuestionImporter
from exam_grader.importers.spreadsheet_importer import SpreadsheetQuestionImporter
from exam_grader.models import Question

# Registry of all available importers
_IMPORTERS: tuple[type[QuestionImporter], ...] = (
    JsonQuestionImporter,
    SpreadsheetQuestionImporter,
)


def get_supported_extensions() -> tuple[str, ...]:
    """
    Get all supported file extensions across all importers.

    Returns:
        Tuple of supported extensions (e.g., ('.csv', '.json', ...)).
    """
    extensions: list[str] = []
    for importer_cls in _IMPORTERS:
        extensions.extend(importer_cls.SUPPORTED_EXTENSIONS)
    return tuple(sorted(set(extensions)))


def create_importer(file_path: Path | str) -> QuestionImporter:
    """
    Create the appropriate importer for a given file.

    Raises:
        QuestionImportError: If the file format is not supported.
    """
    path = Path(file_path)
    extension = path.suffix.lower()

    for importer_cls in _IMPORTERS:
        if extension in importer_cls.SUPPORTED_EXTENSIONS:
            return importer_cls()

    supported = get_supported_extensions()
    raise QuestionImportError(
        f"Unsupported file format '{extension}'. Supported formats: {supported}",
        path,
    )


def load_questions(file_path: Path | str, exam_id: str | None = None) -> list[Question]:
    """
    Import questions from a question bank file.

    Args:
        file_path: Path to the file.
        exam_id: Exam the questions belong to.

    Returns:
        Validated questions in order.

    Raises:
        QuestionImportError: If import fails.
    """
    path = Path(file_path)
    importer = create_importer(path)
    return importer.load(path, exam_id=exam_id)
