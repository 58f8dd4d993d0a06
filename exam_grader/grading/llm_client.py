"""
LLM client for the Code-Quality Grader.

Provides a wrapper around the OpenAI SDK configured for an OpenAI-compatible
endpoint (Groq by default). Every request has an explicit timeout, and
transient failures are retried with exponential backoff.
"""

import logging
import time

from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI, RateLimitError

from exam_grader.config import Settings, get_settings
from exam_grader.errors import DependencyError

logger = logging.getLogger(__name__)


class LLMError(DependencyError):
    """Raised when LLM API call fails."""


class LLMClient:
    """
    Client for an OpenAI-compatible chat completions API.

    Implements retry logic with exponential backoff. The SDK's own retries
    are disabled so that the timeout bound applies per attempt.
    """

    def __init__(self, settings: Settings | None = None):
        """
        Initialize the LLM client.

        Args:
            settings: Configuration settings. Uses global settings if not provided.

        Raises:
            LLMError: If no API key is configured.
        """
        self._settings = settings or get_settings()
        if not self._settings.groq_api_key:
            raise LLMError("No API key configured for the code grading endpoint")

        self._client = OpenAI(
            api_key=self._settings.groq_api_key,
            base_url=self._settings.llm_base_url,
            timeout=self._settings.code_grader_timeout,
            max_retries=0,
        )

        # Retry configuration
        self._max_retries = self._settings.code_grader_max_retries
        self._base_delay = 1.0  # seconds
        self._max_delay = 30.0  # seconds

    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
        json_mode: bool = True,
    ) -> str:
        """
        Generate a response from the LLM.

        Args:
            system_prompt: System message defining the LLM's role.
            user_prompt: User message with the actual request.
            temperature: Override temperature (uses config default if None).
            max_tokens: Override maximum tokens in response.
            json_mode: Ask the provider for a JSON object response.

        Returns:
            The generated text response.

        Raises:
            LLMError: If generation fails after all retries.
        """
        temp = temperature if temperature is not None else self._settings.llm_temperature
        tokens = max_tokens or self._settings.llm_max_tokens

        messages: list[dict[str, str]] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

        return self._call_with_retry(messages, temp, tokens, json_mode)

    def _call_with_retry(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
        json_mode: bool,
    ) -> str:
        """
        Call the API with exponential backoff retry.

        Raises:
            LLMError: If all retries fail.
        """
        last_error: Exception | None = None
        extra: dict[str, object] = {}
        if json_mode:
            extra["response_format"] = {"type": "json_object"}

        for attempt in range(self._max_retries + 1):
            try:
                response = self._client.chat.completions.create(
                    model=self._settings.llm_model,
                    messages=messages,  # type: ignore[arg-type]
                    temperature=temperature,
                    max_tokens=max_tokens,
                    **extra,  # type: ignore[arg-type]
                )

                if response.choices and response.choices[0].message.content:
                    return response.choices[0].message.content

                raise LLMError("Empty response from LLM")

            except APITimeoutError as e:
                # Subclass of APIConnectionError; a timeout already cost the full
                # bound so it is reported rather than retried.
                raise LLMError(
                    f"Request timed out after {self._settings.code_grader_timeout}s",
                    cause=e,
                    retryable=True,
                ) from e

            except RateLimitError as e:
                last_error = e
                if attempt < self._max_retries:
                    self._backoff(attempt, "rate limited")
                    continue
                raise LLMError(
                    f"Rate limit exceeded after {self._max_retries} retries",
                    cause=e,
                    retryable=True,
                ) from e

            except APIConnectionError as e:
                last_error = e
                if attempt < self._max_retries:
                    self._backoff(attempt, "connection failed")
                    continue
                raise LLMError(
                    f"Connection failed after {self._max_retries} retries",
                    cause=e,
                    retryable=True,
                ) from e

            except APIStatusError as e:
                # Don't retry on client errors (4xx except 429)
                if 400 <= e.status_code < 500 and e.status_code != 429:
                    raise LLMError(
                        f"API error {e.status_code}: {e.message}",
                        cause=e,
                        retryable=False,
                    ) from e

                last_error = e
                if attempt < self._max_retries:
                    self._backoff(attempt, f"status {e.status_code}")
                    continue
                raise LLMError(
                    f"API error after {self._max_retries} retries: {e.message}",
                    cause=e,
                    retryable=True,
                ) from e

            except LLMError:
                raise

            except Exception as e:
                raise LLMError(f"Unexpected error: {e}", cause=e, retryable=False) from e

        raise LLMError(f"Failed after {self._max_retries} retries", cause=last_error)

    def _backoff(self, attempt: int, reason: str) -> None:
        delay = self._calculate_delay(attempt)
        logger.warning("LLM request %s, retrying in %.1fs", reason, delay)
        time.sleep(delay)

    def _calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay for exponential backoff.

        Args:
            attempt: Current attempt number (0-indexed).

        Returns:
            Delay in seconds.
        """
        delay = self._base_delay * (2**attempt)
        return min(delay, self._max_delay)

    def health_check(self) -> bool:
        """
        Check if the API is reachable.

        Returns:
            True if API is healthy, False otherwise.
        """
        try:
            response = self._client.chat.completions.create(
                model=self._settings.llm_model,
                messages=[{"role": "user", "content": "ping"}],
                max_tokens=5,
            )
            return bool(response.choices)
        except Exception as e:
            logger.warning("Health check failed: %s", e)
            return False
