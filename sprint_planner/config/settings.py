from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sprint_planner.planning.invariants import BACKOFF_SCHEDULE_MS, DEFAULT_MAX_ATTEMPTS


class Settings(BaseSettings):
    planner_version: str = Field(default="unversioned", validation_alias="PLANNER_VERSION")
    planner_provider: str = Field(
        default="openai",
        validation_alias="PLANNER_PROVIDER",
        description="Remote planner provider (openai | lmstudio)",
    )
    planner_model: str = Field(default="gpt-4o-mini", validation_alias="PLANNER_MODEL")
    openai_api_key: str = Field(default="", validation_alias="OPENAI_API_KEY")
    lmstudio_base_url: str = Field(
        default="http://localhost:1234",  # Local LM Studio server; only used when PLANNER_PROVIDER=lmstudio
        validation_alias="LMSTUDIO_BASE_URL",
    )
    max_attempts: int = Field(
        default=DEFAULT_MAX_ATTEMPTS,
        ge=1,
        le=DEFAULT_MAX_ATTEMPTS,
        validation_alias="PLANNER_MAX_ATTEMPTS",
        description="Remote planner attempts before falling back to the heuristic plan",
    )
    backoff_schedule_ms: list[int] = Field(
        default_factory=lambda: list(BACKOFF_SCHEDULE_MS),
        validation_alias="PLANNER_BACKOFF_SCHEDULE_MS",
        description="Per-attempt wait before a retry; the last entry is reused for later attempts",
    )
    request_timeout_s: float = Field(default=45.0, gt=0, validation_alias="PLANNER_REQUEST_TIMEOUT_S")
    temperature: float = Field(default=0.2, ge=0.0, le=2.0, validation_alias="PLANNER_TEMPERATURE")
    max_tokens: int = Field(default=2048, gt=0, validation_alias="PLANNER_MAX_TOKENS")
    default_language: str = Field(default="en", validation_alias="PLANNER_DEFAULT_LANGUAGE")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(valid_levels)}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("planner_provider")
    @classmethod
    def validate_planner_provider(cls, value: str) -> str:
        """Normalize the provider name and warn about unsupported values."""
        normalized = value.strip().lower()
        if normalized not in {"openai", "lmstudio"}:
            logger.warning(
                f"Unsupported PLANNER_PROVIDER '{value}'. Remote planning will fail over to the heuristic planner."
            )
        return normalized

    @field_validator("backoff_schedule_ms")
    @classmethod
    def validate_backoff_schedule(cls, value: list[int]) -> list[int]:
        """Backoff schedule must contain at least one non-negative delay."""
        if not value:
            logger.warning("PLANNER_BACKOFF_SCHEDULE_MS is empty. Using the default schedule.")
            return list(BACKOFF_SCHEDULE_MS)
        if any(delay < 0 for delay in value):
            raise ValueError("PLANNER_BACKOFF_SCHEDULE_MS entries must be >= 0")
        return value

    @field_validator("openai_api_key")
    @classmethod
    def validate_api_key(cls, value: str) -> str:
        """Warn when the OpenAI key is missing.

        The planner still works without it: every request falls back to the
        deterministic heuristic plan.
        """
        if not value:
            logger.warning(
                "⚠️ OPENAI_API_KEY is not set. Remote sprint planning will not work "
                "and all sprints will be produced by the fallback planner."
            )
        return value

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
