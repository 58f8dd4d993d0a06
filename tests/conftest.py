"""
Pytest configuration and fixtures.

Provides common test fixtures for all test modules.
"""

import json
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator
from unittest.mock import MagicMock, patch

import pytest

from exam_grader.config import Settings
from exam_grader.models import Exam, Question, QuestionType, Submission
from exam_grader.store import InMemoryStore, JsonFileStore


# ==============================================================================
# Directory Fixtures
# ==============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ==============================================================================
# Question Fixtures
# ==============================================================================


@pytest.fixture
def sample_questions() -> list[Question]:
    """One question of every type, 10 marks each."""
    return [
        Question(
            id="q1",
            exam_id="exam-1",
            question_text="Which keyword defines a function in Python?",
            question_type=QuestionType.MULTIPLE_CHOICE,
            marks=10,
            correct_answer="B",
            order_number=1,
        ),
        Question(
            id="q2",
            exam_id="exam-1",
            question_text="Write a function that returns the sum of a list.",
            question_type=QuestionType.CODING,
            marks=10,
            sample_code="def total(xs):\n    return sum(xs)",
            programming_language="python",
            order_number=2,
        ),
        Question(
            id="q3",
            exam_id="exam-1",
            question_text="Draw a flowchart for finding the largest of three numbers.",
            question_type=QuestionType.FLOWCHART,
            marks=10,
            order_number=3,
        ),
        Question(
            id="q4",
            exam_id="exam-1",
            question_text="Explain what a loop is.",
            question_type=QuestionType.SHORT_ANSWER,
            marks=10,
            order_number=4,
        ),
    ]


@pytest.fixture
def sample_exam(sample_questions: list[Question]) -> Exam:
    """Create a sample exam."""
    return Exam(id="exam-1", title="Programming Basics", questions=tuple(sample_questions))


# ==============================================================================
# Answer Fixtures
# ==============================================================================


@pytest.fixture
def sample_code() -> str:
    """A five-line coding answer."""
    return """def total(xs):
    result = 0
    for x in xs:
        result += x
    return result"""


@pytest.fixture
def sample_answers(sample_code: str) -> dict[str, Any]:
    """Answers scoring 10 + 8 + 9 + 8 = 35 of 40 heuristically."""
    return {
        "q1": "b",
        "q2": sample_code,
        "q3": {"nodes": ["start", "compare", "end"], "edges": [[0, 1], [1, 2]]},
        "q4": "Loops repeat a block of code until a condition is met",
    }


@pytest.fixture
def sample_submission(sample_answers: dict[str, Any]) -> Submission:
    """Create an ungraded submission."""
    return Submission(
        id="sub-1",
        exam_id="exam-1",
        student_name="Ada Lovelace",
        student_email="ada@example.com",
        answers=sample_answers,
        submitted_at=datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc),
        time_taken_seconds=1800,
    )


# ==============================================================================
# Store Fixtures
# ==============================================================================


@pytest.fixture
def memory_store(sample_exam: Exam, sample_submission: Submission) -> InMemoryStore:
    """In-memory store holding the sample exam and submission."""
    store = InMemoryStore()
    store.save_exam(sample_exam)
    store.add_submission(sample_submission)
    return store


@pytest.fixture
def json_store(temp_dir: Path) -> JsonFileStore:
    """Empty JSON file store in a temporary directory."""
    return JsonFileStore(temp_dir / "store.json")


# ==============================================================================
# LLM Response Fixtures
# ==============================================================================


@pytest.fixture
def sample_code_response() -> str:
    """Sample Code-Quality Grader response in JSON format."""
    return json.dumps(
        {
            "score": 7,
            "feedback": "Correct logic; the built-in sum() would be simpler.",
            "strengths": ["Correct accumulation", "Clear naming"],
            "improvements": ["Use sum() for brevity"],
        }
    )


# ==============================================================================
# Settings Fixtures
# ==============================================================================


@pytest.fixture
def test_settings(temp_dir: Path) -> Settings:
    """Create test settings with mocked values."""
    return Settings(
        groq_api_key="test-api-key-for-testing",
        llm_base_url="https://test.api.local",
        llm_model="test-model",
        llm_temperature=0.0,
        code_grader_enabled=False,
        code_grader_max_retries=0,
        regrade_delay_seconds=0.0,
        store_path=temp_dir / "store.json",
        notifications_enabled=False,
    )


# ==============================================================================
# Mock Fixtures
# ==============================================================================


@pytest.fixture
def mock_llm_client(sample_code_response: str) -> Generator[MagicMock, None, None]:
    """Mock the LLM client to avoid actual API calls."""
    with patch("exam_grader.grading.code_grader.LLMClient") as mock_class:
        mock_instance = MagicMock()
        mock_instance.generate.return_value = sample_code_response
        mock_instance.health_check.return_value = True
        mock_class.return_value = mock_instance
        yield mock_instance
