"""
Unit tests for question bank importers.

Tests JSON, CSV and Excel import, importer selection, and error reporting.
"""

import json
from pathlib import Path

import pytest
from openpyxl import Workbook

from exam_grader.importers import (
    QuestionImportError,
    create_importer,
    get_supported_extensions,
    load_questions,
)
from exam_grader.importers.json_importer import JsonQuestionImporter
from exam_grader.importers.spreadsheet_importer import SpreadsheetQuestionImporter
from exam_grader.models import QuestionType


@pytest.fixture
def question_records() -> list[dict]:
    return [
        {
            "id": "q1",
            "question_text": "2 + 2 = ?",
            "question_type": "multiple_choice",
            "marks": 5,
            "correct_answer": "4",
            "difficulty": "easy",
        },
        {
            "id": "q2",
            "question_text": "Print hello",
            "question_type": "coding",
            "marks": 10,
            "programming_language": "Python",
        },
    ]


class TestJsonImporter:
    """Tests for JsonQuestionImporter."""

    def test_list_of_questions(self, temp_dir: Path, question_records: list[dict]) -> None:
        path = temp_dir / "bank.json"
        path.write_text(json.dumps(question_records), encoding="utf-8")

        questions = JsonQuestionImporter().load(path, exam_id="exam-1")

        assert [q.id for q in questions] == ["q1", "q2"]
        assert questions[0].question_type == QuestionType.MULTIPLE_CHOICE
        assert questions[1].programming_language == "python"
        assert all(q.exam_id == "exam-1" for q in questions)
        assert [q.order_number for q in questions] == [1, 2]

    def test_exported_exam_shape(self, temp_dir: Path, question_records: list[dict]) -> None:
        path = temp_dir / "exam.json"
        path.write_text(json.dumps({"title": "Quiz", "questions": question_records}), encoding="utf-8")

        assert len(JsonQuestionImporter().load(path)) == 2

    def test_invalid_json(self, temp_dir: Path) -> None:
        path = temp_dir / "bad.json"
        path.write_text("[{", encoding="utf-8")

        with pytest.raises(QuestionImportError, match="Invalid JSON"):
            JsonQuestionImporter().load(path)

    def test_wrong_shape(self, temp_dir: Path) -> None:
        path = temp_dir / "bad.json"
        path.write_text(json.dumps({"items": []}), encoding="utf-8")

        with pytest.raises(QuestionImportError, match="Expected a list"):
            JsonQuestionImporter().load(path)

    def test_empty_bank(self, temp_dir: Path) -> None:
        path = temp_dir / "empty.json"
        path.write_text("[]", encoding="utf-8")

        with pytest.raises(QuestionImportError, match="no questions"):
            JsonQuestionImporter().load(path)

    def test_invalid_row_reported(self, temp_dir: Path, question_records: list[dict]) -> None:
        question_records[1]["marks"] = 0
        path = temp_dir / "bank.json"
        path.write_text(json.dumps(question_records), encoding="utf-8")

        with pytest.raises(QuestionImportError, match=r"row 2") as exc_info:
            JsonQuestionImporter().load(path)

        assert exc_info.value.row == 2


class TestSpreadsheetImporter:
    """Tests for SpreadsheetQuestionImporter."""

    def test_csv(self, temp_dir: Path) -> None:
        path = temp_dir / "bank.csv"
        path.write_text(
            "id,question_text,question_type,marks,correct_answer,order_number\n"
            "q1,Capital of France?,multiple_choice,5,Paris,2\n"
            "q2,Explain recursion,short_answer,10,,1\n",
            encoding="utf-8",
        )

        questions = SpreadsheetQuestionImporter().load(path, exam_id="e")

        assert [q.id for q in questions] == ["q2", "q1"]
        assert questions[1].correct_answer == "Paris"
        assert questions[1].marks == 5
        assert questions[0].correct_answer is None

    def test_xlsx(self, temp_dir: Path) -> None:
        workbook = Workbook()
        sheet = workbook.active
        sheet.append(["ID", "Question Text", "Question Type", "Marks", "Correct Answer"])
        sheet.append([1, "Pick B", "Multiple_Choice", 4, "B"])
        sheet.append([None, None, None, None, None])
        sheet.append([2, "Draw a flowchart", "flowchart", 6, None])
        path = temp_dir / "bank.xlsx"
        workbook.save(path)

        questions = SpreadsheetQuestionImporter().load(path)

        assert [q.id for q in questions] == ["1", "2"]
        assert questions[0].question_type == QuestionType.MULTIPLE_CHOICE
        assert questions[1].marks == 6

    def test_corrupt_xlsx(self, temp_dir: Path) -> None:
        path = temp_dir / "bank.xlsx"
        path.write_bytes(b"not a workbook")

        with pytest.raises(QuestionImportError):
            SpreadsheetQuestionImporter().load(path)


class TestImporterFactory:
    """Tests for importer selection."""

    def test_supported_extensions(self) -> None:
        assert get_supported_extensions() == (".csv", ".json", ".xlsx")

    def test_create_importer(self) -> None:
        assert isinstance(create_importer("bank.JSON"), JsonQuestionImporter)
        assert isinstance(create_importer(Path("bank.csv")), SpreadsheetQuestionImporter)

    def test_unsupported_format(self) -> None:
        with pytest.raises(QuestionImportError, match="Unsupported file format"):
            create_importer("bank.docx")

    def test_missing_file(self, temp_dir: Path) -> None:
        with pytest.raises(QuestionImportError, match="does not exist"):
            load_questions(temp_dir / "missing.json")

    def test_load_questions(self, temp_dir: Path, question_records: list[dict]) -> None:
        path = temp_dir / "bank.json"
        path.write_text(json.dumps(question_records), encoding="utf-8")

        assert len(load_questions(path, exam_id="e")) == 2
