"""
Integration tests for the command-line interface.

Runs the full import -> grade -> show -> regrade flow against a JSON
store in a temporary directory.
"""

import json
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from exam_grader.main import app
from exam_grader.models import GradingStatus
from exam_grader.store import JsonFileStore

runner = CliRunner()


@pytest.fixture
def question_file(temp_dir: Path) -> Path:
    path = temp_dir / "questions.json"
    path.write_text(
        json.dumps(
            [
                {"id": "q1", "question_type": "multiple_choice", "marks": 10, "correct_answer": "B"},
                {"id": "q2", "question_type": "short_answer", "marks": 10},
            ]
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def submissions_file(temp_dir: Path) -> Path:
    submissions: list[dict[str, Any]] = [
        {
            "id": "sub-1",
            "exam_id": "exam-1",
            "student_name": "Ada",
            "answers": {"q1": "b", "q2": "A loop repeats code"},
            "submitted_at": "2024-05-01T09:30:00Z",
        },
        {
            "id": "sub-2",
            "exam_id": "exam-1",
            "answers": {"q1": "C"},
            "submitted_at": "2024-05-01T10:00:00Z",
        },
    ]
    path = temp_dir / "submissions.json"
    path.write_text(json.dumps(submissions), encoding="utf-8")
    return path


@pytest.fixture
def store_path(temp_dir: Path, question_file: Path, submissions_file: Path) -> Path:
    path = temp_dir / "store.json"
    result = runner.invoke(
        app, ["import-exam", str(question_file), "--exam-id", "exam-1", "--title", "Quiz", "--store", str(path)]
    )
    assert result.exit_code == 0, result.output
    result = runner.invoke(app, ["import-submissions", str(submissions_file), "--store", str(path)])
    assert result.exit_code == 0, result.output
    return path


class TestCli:
    """Tests for the CLI commands."""

    def test_import(self, store_path: Path) -> None:
        store = JsonFileStore(store_path)

        assert store.get_exam("exam-1").total_marks == 20
        assert store.get_submission("sub-2").grading_status == GradingStatus.UNGRADED

    def test_import_missing_file(self, temp_dir: Path) -> None:
        result = runner.invoke(
            app, ["import-exam", str(temp_dir / "nope.json"), "--exam-id", "e", "--store", str(temp_dir / "s.json")]
        )

        assert result.exit_code == 1
        assert "Import Error" in result.output

    def test_grade_and_show(self, store_path: Path) -> None:
        result = runner.invoke(app, ["grade", "sub-1", "--no-code-grader", "--store", str(store_path)])

        assert result.exit_code == 0, result.output
        assert "15 / 20" in result.output

        result = runner.invoke(app, ["show", "sub-1", "--store", str(store_path)])

        assert result.exit_code == 0
        assert "15 / 20" in result.output

    def test_show_ungraded(self, store_path: Path) -> None:
        result = runner.invoke(app, ["show", "sub-2", "--store", str(store_path)])

        assert result.exit_code == 0
        assert "Grading in progress" in result.output

    def test_show_failed(self, store_path: Path) -> None:
        JsonFileStore(store_path).update_submission("sub-2", grading_status=GradingStatus.FAILED)

        result = runner.invoke(app, ["show", "sub-2", "--store", str(store_path)])

        assert result.exit_code == 0
        assert "Grading failed" in result.output
        assert "exam-grader regrade" in result.output

    def test_grade_unknown_submission(self, store_path: Path) -> None:
        result = runner.invoke(app, ["grade", "missing", "--no-code-grader", "--store", str(store_path)])

        assert result.exit_code == 1

    def test_regrade(self, store_path: Path) -> None:
        result = runner.invoke(app, ["regrade", "--store", str(store_path)])

        assert result.exit_code == 0, result.output
        store = JsonFileStore(store_path)
        assert store.get_submission("sub-1").is_graded
        assert store.get_submission("sub-2").is_graded

        result = runner.invoke(app, ["regrade", "--store", str(store_path)])

        assert "No stuck submissions found" in result.output
