"""
Response parser for Code-Quality Grader replies.

The grading service is untrusted: its reply is parsed as JSON and every
field is checked before any of it is used. Scores outside the question's
range are rejected rather than clipped.
"""

import json
import math
import re
from typing import Any

from exam_grader.errors import CodeGraderError
from exam_grader.models import CodeGrade

_WHOLE_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```\Z")


class ResponseParser:
    """
    Parses and validates Code-Quality Grader responses.

    Ensures:
    1. Response contains exactly one JSON object
    2. "score" is a finite number within [0, max_marks]
    3. "feedback" is a non-empty string
    4. "strengths" and "improvements" are lists of strings when present
    """

    def parse(self, response: str, max_marks: int) -> CodeGrade:
        """
        Parse a grader response into a CodeGrade.

        Args:
            response: Raw response text (expected JSON).
            max_marks: Maximum marks for the question.

        Returns:
            Validated CodeGrade with the score floored to whole marks.

        Raises:
            CodeGraderError: If parsing or validation fails.
        """
        json_str = self._extract_json(response)

        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise CodeGraderError(
                f"Invalid JSON in response: {e}",
                raw_response=response,
            ) from e

        if not isinstance(data, dict):
            raise CodeGraderError("Response JSON must be an object", raw_response=response)

        return self._validate_and_convert(data, max_marks, response)

    def _extract_json(self, response: str) -> str:
        """
        Extract JSON from response, handling common formats.

        Args:
            response: Raw response text.

        Returns:
            Extracted JSON string.
        """
        stripped = response.strip()
        try:
            json.loads(stripped)
            return stripped
        except json.JSONDecodeError:
            pass

        # Unwrap a markdown code block only when it is the whole reply
        fence_match = _WHOLE_FENCE.match(stripped)
        if fence_match:
            return fence_match.group(1)

        brace_start = response.find("{")
        if brace_start == -1:
            raise CodeGraderError("No JSON object found in response", raw_response=response)

        # Find matching closing brace, ignoring braces inside strings
        depth = 0
        in_string = False
        escaped = False
        for i, char in enumerate(response[brace_start:], start=brace_start):
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return response[brace_start : i + 1]

        raise CodeGraderError("Unclosed JSON object in response", raw_response=response)

    def _validate_and_convert(
        self, data: dict[str, Any], max_marks: int, raw_response: str
    ) -> CodeGrade:
        for field in ("score", "feedback"):
            if field not in data:
                raise CodeGraderError(f"Missing required field: {field}", raw_response=raw_response)

        score = self._parse_score(data["score"], max_marks, raw_response)

        feedback = data["feedback"]
        if not isinstance(feedback, str) or not feedback.strip():
            raise CodeGraderError("feedback must be a non-empty string", raw_response=raw_response)

        return CodeGrade(
            score=score,
            feedback=feedback.strip(),
            strengths=self._parse_string_list(data, "strengths", raw_response),
            improvements=self._parse_string_list(data, "improvements", raw_response),
        )

    def _parse_score(self, value: Any, max_marks: int, raw_response: str) -> int:
        # bool is an int subclass; "true" is not a score
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise CodeGraderError(
                f"Invalid numeric value for score: {value!r}", raw_response=raw_response
            )
        if not math.isfinite(value):
            raise CodeGraderError(f"Non-finite score: {value}", raw_response=raw_response)
        if value < 0:
            raise CodeGraderError(f"Negative score: {value}", raw_response=raw_response)
        if value > max_marks:
            raise CodeGraderError(
                f"Score ({value}) exceeds max marks ({max_marks})", raw_response=raw_response
            )
        return math.floor(value)

    def _parse_string_list(
        self, data: dict[str, Any], field: str, raw_response: str
    ) -> tuple[str, ...]:
        value = data.get(field)
        if value is None:
            return ()
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise CodeGraderError(f"{field} must be a list of strings", raw_response=raw_response)
        return tuple(item.strip() for item in value if item.strip())
