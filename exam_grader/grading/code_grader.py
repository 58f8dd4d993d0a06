"""
Code-Quality Grader.

Delegates one coding answer to an external text-generation service and
returns a validated score with structured feedback. Any failure (timeout,
bad status, malformed reply) raises CodeGraderError; a score is never
invented here.
"""

import logging
import time
from collections import OrderedDict
from hashlib import sha256
from typing import Callable

from exam_grader.config import Settings, get_settings
from exam_grader.errors import CodeGraderError
from exam_grader.grading.llm_client import LLMClient, LLMError
from exam_grader.grading.parser import ResponseParser
from exam_grader.grading.prompt_builder import PromptBuilder
from exam_grader.grading.vbnet import analyze_vbnet
from exam_grader.models import CodeGrade, Question

logger = logging.getLogger(__name__)

_VBNET_LANGUAGES = frozenset({"vb", "vbnet"})


class GradeCache:
    """
    Small TTL cache of successful grades.

    Identical code for the same question is common in a class; caching
    keeps repeat answers from costing another request.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, CodeGrade]] = OrderedDict()

    @staticmethod
    def make_key(question: Question, student_code: str, language: str) -> str:
        raw = "\x1f".join(
            [question.id, question.question_text, str(question.marks), language, student_code]
        )
        return sha256(raw.encode("utf-8")).hexdigest()

    def get(self, key: str) -> CodeGrade | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, grade = entry
        if self._clock() - stored_at >= self._ttl:
            del self._entries[key]
            return None
        return grade

    def put(self, key: str, grade: CodeGrade) -> None:
        if self._max_entries <= 0 or self._ttl <= 0:
            return
        self._entries[key] = (self._clock(), grade)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)


class CodeQualityGrader:
    """
    LLM-assisted grading for coding questions.

    Builds a language-aware prompt, requests a JSON reply and validates it
    with ResponseParser before trusting any field.
    """

    def __init__(self, settings: Settings | None = None):
        """
        Initialize the grader.

        Args:
            settings: Configuration settings. Uses global settings if not provided.

        Raises:
            LLMError: If no API key is configured.
        """
        self._settings = settings or get_settings()
        self._llm_client = LLMClient(self._settings)
        self._response_parser = ResponseParser()
        self._cache = GradeCache(
            ttl_seconds=self._settings.code_grader_cache_ttl,
            max_entries=self._settings.code_grader_cache_size,
        )

    def grade_code(
        self,
        question: Question,
        student_code: str,
        language: str | None = None,
    ) -> CodeGrade:
        """
        Grade one coding answer.

        Args:
            question: The coding question; supplies text, sample code and marks.
            student_code: The learner's code.
            language: Programming language; defaults to the question's, then settings.

        Returns:
            Validated CodeGrade with 0 <= score <= question.marks.

        Raises:
            CodeGraderError: On timeout, API failure or a malformed reply.
        """
        lang = (
            language
            or question.programming_language
            or self._settings.default_programming_language
        ).strip().lower()

        cache_key = GradeCache.make_key(question, student_code, lang)
        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.debug("Using cached code grade for question %s", question.id)
            return cached

        structure = analyze_vbnet(student_code) if lang in _VBNET_LANGUAGES else None
        user_prompt = PromptBuilder.build_grading_prompt(question, student_code, lang, structure)

        try:
            raw_response = self._llm_client.generate(
                system_prompt=PromptBuilder.get_system_prompt(),
                user_prompt=user_prompt,
            )
        except LLMError as e:
            raise CodeGraderError(
                f"Code grading request failed: {e}", cause=e, retryable=e.retryable
            ) from e

        grade = self._response_parser.parse(raw_response, question.marks)
        self._cache.put(cache_key, grade)

        logger.info(
            "Code grader scored question %s: %d/%d", question.id, grade.score, question.marks
        )
        return grade

    def health_check(self) -> bool:
        """
        Check if the grading endpoint is reachable.

        Returns:
            True if the LLM API is reachable.
        """
        return self._llm_client.health_check()
