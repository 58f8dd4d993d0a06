"""JSON question bank importer."""

import json
from pathlib import Path
from typing import ClassVar

from exam_grader.importers.base import QuestionImporter, QuestionImportError
from exam_grader.models import Question


class JsonQuestionImporter(QuestionImporter):
    """
    Loads questions from JSON.

    Accepts either a list of question objects or an object with a
    "questions" list (the shape of an exported exam).
    """

    SUPPORTED_EXTENSIONS: ClassVar[tuple[str, ...]] = (".json",)

    def load(self, file_path: Path, exam_id: str | None = None) -> list[Question]:
        self._validate_file(file_path)

        try:
            data = json.loads(file_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise QuestionImportError(f"Invalid JSON: {e}", file_path, cause=e) from e
        except (OSError, UnicodeDecodeError) as e:
            raise QuestionImportError(f"Cannot read file: {e}", file_path, cause=e) from e

        if isinstance(data, dict):
            data = data.get("questions")
        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise QuestionImportError("Expected a list of question objects", file_path)

        return self._build_questions(data, file_path, exam_id)
