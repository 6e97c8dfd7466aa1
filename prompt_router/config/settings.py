"""Configuration management using Pydantic Settings."""

from typing import Annotated, Literal

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from prompt_router.errors import ConfigurationError

# OpenRouter free models with priority order
DEFAULT_MEDIUM_MODELS = [
    "moonshotai/kimi-k2:free",
    "moonshotai/kimi-dev-72b:free",
    "mistralai/mixtral-8x7b-instruct:free",
    "gryphe/mythomax-l2-13b:free",
    "nousresearch/nous-capybara-7b:free",
    "moonshotai/kimi-vl-a3b-thinking:free",
    "meta-llama/llama-3.3-70b-instruct:free",
]

DEFAULT_SMALL_MODELS = [
    "microsoft/DialoGPT-medium",
    "HuggingFaceH4/zephyr-7b-beta",
    "google/flan-t5-large",
]

DEFAULT_HIGH_MODELS = [
    "gpt-4",
    "gpt-4-turbo",
    "claude-3-opus",
    "claude-3-sonnet",
    "gemini-pro",
]

# Fields that must be set before a production deployment.
REQUIRED_FIELDS = (
    "openrouter_api_key",
    "hf_api_key",
    "hf_endpoint",
    "puter_api_key",
    "puter_script_url",
    "signature",
)

ModelList = Annotated[list[str], NoDecode]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "text"] = "json"

    # OpenRouter (medium tier)
    openrouter_api_key: str = Field(default="", description="OpenRouter API key")
    openrouter_endpoint: str = "https://openrouter.ai/api/v1/chat/completions"
    site_url: str = "http://localhost:5000"
    app_title: str = "Flamingo AI Chat"

    # HuggingFace Inference API (small tier)
    hf_api_key: str = Field(default="", description="HuggingFace API token")
    hf_endpoint: str = "https://api-inference.huggingface.co/models"

    # Puter scripts (high tier)
    puter_api_key: str = Field(default="", description="Puter API key")
    puter_script_url: str = "https://api.puter.com/v1/scripts"

    # Prompt enhancement
    anthropic_api_key: str = Field(
        default="",
        description="Anthropic API key for the prompt enhancer; empty disables enhancement",
    )
    enhancer_model: str = "claude-3-5-haiku-latest"
    enhancer_timeout: float = Field(default=20.0, gt=0, le=120)

    # Per-tier timeouts (seconds)
    small_timeout: float = Field(default=45.0, ge=1, le=600)
    medium_timeout: float = Field(default=30.0, ge=1, le=600)
    high_timeout: float = Field(default=60.0, ge=1, le=600)

    # Per-tier candidate models, comma separated in the environment
    small_model_candidates: ModelList = Field(default_factory=lambda: list(DEFAULT_SMALL_MODELS))
    medium_model_candidates: ModelList = Field(default_factory=lambda: list(DEFAULT_MEDIUM_MODELS))
    high_model_candidates: ModelList = Field(default_factory=lambda: list(DEFAULT_HIGH_MODELS))

    # Classification thresholds
    low_word_threshold: int = Field(default=20, ge=0)
    high_word_threshold: int = Field(default=100, ge=1)

    # Routing policy
    signature: str = "Built by Flamingo (human curated)"
    stop_on_fatal: bool = False

    # Worker Configuration
    max_thread_workers: int | None = Field(default=None, ge=1, le=256)

    @field_validator(
        "small_model_candidates",
        "medium_model_candidates",
        "high_model_candidates",
        mode="before",
    )
    @classmethod
    def split_models(cls, v: str | list[str]) -> list[str]:
        """Accept comma-separated model lists."""
        if isinstance(v, str):
            v = v.split(",")
        models = [m.strip() for m in v if m and m.strip()]
        if not 3 <= len(models) <= 7:
            raise ValueError(f"expected 3-7 candidate models, got {len(models)}")
        return models

    @field_validator("high_word_threshold")
    @classmethod
    def check_thresholds(cls, v: int, info: ValidationInfo) -> int:
        """High threshold must sit above the low one."""
        low = info.data.get("low_word_threshold")
        if low is not None and v <= low:
            raise ValueError("high_word_threshold must be greater than low_word_threshold")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment == "development"

    def missing_required(self) -> list[str]:
        """Names of required fields that are unset or blank."""
        return [name for name in REQUIRED_FIELDS if not str(getattr(self, name) or "").strip()]


def validate_environment(settings: Settings) -> Settings:
    """
    Ensure required configuration is present at startup.

    In production any missing value is fatal. Elsewhere the missing values are
    replaced with placeholders so a local run does not crash.

    Raises:
        ConfigurationError: If required values are missing in production
    """
    from prompt_router.logging.logger import get_logger

    logger = get_logger(__name__)
    missing = settings.missing_required()

    if missing and settings.is_production:
        logger.error("environment_validation_failed", missing=missing)
        raise ConfigurationError(
            "Missing required environment variables: " + ", ".join(n.upper() for n in missing)
        )

    if missing:
        for name in missing:
            setattr(settings, name, f"placeholder-{name}")
        logger.warning(
            "environment_placeholders_used",
            missing=missing,
            environment=settings.environment,
        )

    logger.info("environment_validated", environment=settings.environment)
    return settings


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global _settings
    _settings = Settings()
    return _settings
