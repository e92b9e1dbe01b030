"""Application settings and configuration."""

from functools import lru_cache
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings

# Load .env file if present
load_dotenv()


class QualitySettings(BaseModel):
    """Thresholds and weights used by the Quality Matrix."""

    pass_threshold: int = Field(default=75, ge=0, le=100)
    review_margin: int = Field(default=10, ge=0, le=100)
    critical_weight: float = Field(default=2.0, gt=0.0)
    critical_checks: tuple[str, ...] = ("clarity_accuracy", "domain_relevance", "examiner_lens")
    check_thresholds: dict[str, int] = Field(
        default_factory=lambda: {
            "clarity_accuracy": 70,
            "domain_relevance": 75,
            "examiner_lens": 70,
            "vocabulary_quality": 65,
            "grammar_structures": 70,
            "educational_value": 70,
        }
    )

    def threshold_for(self, criterion: str) -> int:
        return self.check_thresholds.get(criterion, 70)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Model Configuration
    model_provider: Literal["bedrock", "anthropic"] = Field(
        default="bedrock",
        description="Chat model provider",
        validation_alias="MODEL_PROVIDER",
    )
    model_name: str = Field(
        default="anthropic.claude-3-7-sonnet-20250219-v1:0",
        description="Model to use (AWS Bedrock model ID or Anthropic model name)",
        validation_alias="MODEL_NAME",
    )

    # AWS CONFIG (optional, boto3 falls back to its own credential chain)
    aws_access_key_id: str | None = Field(
        default=None,
        description="AWS access key ID",
        validation_alias="AWS_ACCESS_KEY_ID",
    )
    aws_secret_access_key: str | None = Field(
        default=None,
        description="AWS secret access key",
        validation_alias="AWS_SECRET_ACCESS_KEY",
    )
    aws_default_region: str | None = Field(
        default=None,
        description="AWS region",
        validation_alias="AWS_DEFAULT_REGION",
    )
    anthropic_api_key: str | None = Field(
        default=None,
        description="Anthropic API key (anthropic provider only)",
        validation_alias="ANTHROPIC_API_KEY",
    )

    # Retry Settings
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Max generation attempts per request",
        validation_alias="MAX_ATTEMPTS",
    )
    token_limits: list[int] = Field(
        default_factory=lambda: [8192, 12288, 16384],
        min_length=1,
        description="Max output tokens per attempt, escalating on retry",
        validation_alias="TOKEN_LIMITS",
    )
    initial_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Temperature for the first attempt",
        validation_alias="INITIAL_TEMPERATURE",
    )
    temperature_step: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="How much the temperature drops on each retry",
        validation_alias="TEMPERATURE_STEP",
    )
    min_temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Lowest temperature a retry may use",
        validation_alias="MIN_TEMPERATURE",
    )
    request_timeout_seconds: float = Field(
        default=120.0,
        gt=0.0,
        description="Timeout for a single model call",
        validation_alias="REQUEST_TIMEOUT",
    )
    retry_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Base backoff delay between attempts (doubles per retry)",
        validation_alias="RETRY_DELAY",
    )

    # Quality Settings
    pass_threshold: int = Field(
        default=75,
        ge=0,
        le=100,
        description="Minimum Quality Matrix score to pass",
        validation_alias="QUALITY_THRESHOLD",
    )
    acceptance_threshold: int = Field(
        default=70,
        ge=0,
        le=100,
        description="Lower score still accepted as good enough (flagged for review)",
        validation_alias="ACCEPTANCE_THRESHOLD",
    )
    review_margin: int = Field(
        default=10,
        ge=0,
        le=100,
        description="Scores this close below the threshold need manual review",
        validation_alias="REVIEW_MARGIN",
    )
    critical_weight: float = Field(
        default=2.0,
        gt=0.0,
        description="Weight of critical quality checks",
        validation_alias="CRITICAL_WEIGHT",
    )

    # Output Settings
    default_output_path: str = Field(
        default="quiz",
        description="Default output file path",
        validation_alias="DEFAULT_OUTPUT",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
        validation_alias="LOG_LEVEL",
    )

    @model_validator(mode="after")
    def acceptance_not_above_pass(self) -> "Settings":
        if self.acceptance_threshold > self.pass_threshold:
            raise ValueError("acceptance_threshold cannot be above pass_threshold")
        return self

    def max_tokens_for(self, attempt: int) -> int:
        """Token ceiling for a 1-based attempt number."""
        index = min(max(attempt, 1), len(self.token_limits)) - 1
        return self.token_limits[index]

    def temperature_for(self, attempt: int) -> float:
        """Temperature for a 1-based attempt number."""
        lowered = self.initial_temperature - (max(attempt, 1) - 1) * self.temperature_step
        return round(max(self.min_temperature, min(self.initial_temperature, lowered)), 2)

    def quality_settings(self) -> QualitySettings:
        return QualitySettings(
            pass_threshold=self.pass_threshold,
            review_margin=self.review_margin,
            critical_weight=self.critical_weight,
        )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "populate_by_name": True,
        "extra": "ignore",
        "protected_namespaces": (),
    }


# Loaded the first time and then cached; services receive it explicitly
@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings object with loaded configuration
    """
    return Settings()
