"""
Configuration management for the exam grader.

Uses Pydantic Settings for type-safe configuration loading from environment variables.
All configuration is validated at startup to fail fast on misconfiguration.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CodeGraderFallback(str, Enum):
    """What to do with a coding question when the Code-Quality Grader fails."""

    HEURISTIC = "heuristic"  # Rescore with the heuristic line-count rule
    ZERO = "zero"  # Record zero marks with an explanatory feedback
    FAIL = "fail"  # Fail the whole submission


class ScoringPolicy(BaseModel):
    """
    Thresholds and percentages used by the heuristic scorer.

    Percentages are whole numbers of the question's marks and the
    resulting score is always floored.
    """

    coding_min_lines: int = Field(
        default=3,
        ge=0,
        description="A coding answer needs MORE than this many non-blank lines for full credit",
    )
    coding_full_percent: int = Field(default=80, ge=0, le=100)
    coding_partial_percent: int = Field(default=40, ge=0, le=100)

    flowchart_complete_percent: int = Field(default=90, ge=0, le=100)
    flowchart_incomplete_percent: int = Field(default=30, ge=0, le=100)

    short_answer_min_words: int = Field(
        default=10,
        ge=1,
        description="A short answer needs at least this many words for full credit",
    )
    short_answer_full_percent: int = Field(default=85, ge=0, le=100)
    short_answer_partial_percent: int = Field(default=50, ge=0, le=100)

    weak_area_percent: int = Field(
        default=50,
        ge=0,
        le=100,
        description="Scores under this percentage mark the question type as a weak area",
    )

    @model_validator(mode="after")
    def validate_ordering(self) -> "ScoringPolicy":
        """Partial credit must never exceed full credit."""
        pairs = [
            ("coding", self.coding_partial_percent, self.coding_full_percent),
            ("flowchart", self.flowchart_incomplete_percent, self.flowchart_complete_percent),
            ("short_answer", self.short_answer_partial_percent, self.short_answer_full_percent),
        ]
        for name, partial, full in pairs:
            if partial > full:
                raise ValueError(f"{name}: partial percentage ({partial}) exceeds full ({full})")
        return self


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings are validated at startup. Missing required fields
    will raise clear validation errors.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # LLM API Configuration
    # ==========================================================================
    groq_api_key: str | None = Field(
        default=None,
        description="API key for the OpenAI-compatible grading endpoint",
    )

    llm_base_url: str = Field(
        default="https://api.groq.com/openai/v1",
        description="Base URL for the OpenAI-compatible endpoint",
    )

    llm_model: str = Field(
        default="llama-3.3-70b-versatile",
        description="Model to use for code grading",
    )

    llm_temperature: float = Field(default=0.2, ge=0.0, le=1.0)

    llm_max_tokens: int = Field(default=2000, ge=100, le=8192)

    # ==========================================================================
    # Code-Quality Grader Configuration
    # ==========================================================================
    code_grader_enabled: bool = Field(
        default=False,
        description="Use the LLM-assisted grader for coding questions",
    )

    code_grader_timeout: float = Field(
        default=20.0,
        ge=1.0,
        le=120.0,
        description="Timeout in seconds for a single grading request",
    )

    code_grader_max_retries: int = Field(default=1, ge=0, le=5)

    code_grader_fallback: CodeGraderFallback = Field(
        default=CodeGraderFallback.HEURISTIC,
        description="Behaviour when the Code-Quality Grader fails",
    )

    code_grader_cache_ttl: float = Field(default=300.0, ge=0.0)

    code_grader_cache_size: int = Field(default=1000, ge=0)

    default_programming_language: str = Field(default="python")

    # ==========================================================================
    # Grading Configuration
    # ==========================================================================
    scoring: ScoringPolicy = Field(default_factory=ScoringPolicy)

    regrade_delay_seconds: float = Field(
        default=0.5,
        ge=0.0,
        le=60.0,
        description="Pause between submissions during a regrade sweep",
    )

    processing_stale_after_seconds: float = Field(
        default=600.0,
        gt=0.0,
        description="A submission left in 'processing' longer than this is considered crashed",
    )

    # ==========================================================================
    # Storage Configuration
    # ==========================================================================
    store_path: Path = Field(
        default=Path("./data/grading_store.json"),
        description="Location of the JSON data store",
    )

    # ==========================================================================
    # Notification Configuration
    # ==========================================================================
    notifications_enabled: bool = Field(default=False)
    smtp_host: str | None = Field(default=None)
    smtp_port: int = Field(default=587, ge=1, le=65535)
    smtp_username: str | None = Field(default=None)
    smtp_password: str | None = Field(default=None)
    smtp_sender: str | None = Field(default=None)
    smtp_use_tls: bool = Field(default=True)

    log_level: str = Field(default="INFO")

    @field_validator("llm_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensure base URL doesn't have trailing slash."""
        return v.rstrip("/")

    @field_validator("default_programming_language")
    @classmethod
    def normalize_language(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def code_grader_available(self) -> bool:
        """True when the Code-Quality Grader is enabled and has credentials."""
        return self.code_grader_enabled and bool(self.groq_api_key)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are only loaded once.
    """
    return Settings()
