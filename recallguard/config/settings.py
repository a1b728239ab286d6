"""
Centralized Configuration Management for RecallGuard

Uses Pydantic Settings for type-safe environment variable loading.
Secrets (API keys, VAPID keys) must be provided via environment variables
or a local `.env` file.

Acceptance thresholds and urgency keyword lists live here rather than in
code: they were chosen empirically and are expected to be recalibrated
against labeled matches.
"""

from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Nested settings classes read os.environ only; expose .env values to them too.
load_dotenv()


class CohereConfig(BaseSettings):
    """Embedding, rerank and chat provider configuration."""

    api_key: Optional[str] = Field(
        default=None,
        description="Cohere API key; matching degrades to lexical-only without it"
    )
    base_url: str = Field(
        default="https://api.cohere.com",
        description="Cohere API base URL"
    )
    embed_model: str = Field(default="embed-english-v3.0")
    rerank_model: str = Field(default="rerank-english-v3.0")
    chat_model: str = Field(default="command-r-plus-08-2024")
    timeout_seconds: float = Field(
        default=30.0,
        description="Per-request timeout"
    )

    model_config = SettingsConfigDict(
        env_prefix="COHERE_",
        case_sensitive=False
    )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


class MatchingConfig(BaseSettings):
    """Retrieval, rerank and decision policy."""

    top_k: int = Field(
        default=50,
        ge=1,
        description="Dense candidates kept per item"
    )
    rerank_top_n: int = Field(
        default=10,
        ge=1,
        description="Maximum reranked results considered per item"
    )
    food_threshold: float = Field(
        default=0.40,
        ge=0.0,
        le=1.0,
        description="Minimum rerank relevance to alert on a food recall"
    )
    product_threshold: float = Field(
        default=0.65,
        ge=0.0,
        le=1.0,
        description="Minimum rerank relevance to alert on a product recall"
    )
    lexical_prior: float = Field(
        default=0.9,
        ge=0.0,
        le=1.0,
        description="Prior score for candidates containing every query token"
    )
    model_number_prior: float = Field(
        default=0.95,
        ge=0.0,
        le=1.0,
        description="Prior score for candidates containing the item's model number"
    )
    embed_batch_size: int = Field(
        default=96,
        ge=1,
        description="Texts per embedding request"
    )
    max_concurrency: int = Field(
        default=4,
        ge=1,
        description="Items matched in parallel"
    )
    high_hazard_keywords: list[str] = Field(
        default=["death", "serious", "fire"],
        description="Product hazard words classified HIGH"
    )
    vehicle_high_keywords: list[str] = Field(
        default=["crash", "fire", "death", "injury", "serious", "airbag"],
    )
    vehicle_medium_keywords: list[str] = Field(
        default=["malfunction", "failure", "stall"],
    )
    schedule_interval_seconds: float = Field(
        default=0.0,
        ge=0.0,
        description="Periodic matching interval; 0 disables the loop"
    )

    model_config = SettingsConfigDict(
        env_prefix="MATCHING_",
        case_sensitive=False
    )


class PushConfig(BaseSettings):
    """Web push delivery configuration."""

    vapid_public_key: Optional[str] = Field(default=None)
    vapid_private_key: Optional[str] = Field(default=None)
    vapid_email: str = Field(
        default="mailto:admin@recallguard.app",
        description="VAPID `sub` claim identifying the sender"
    )
    ttl_seconds: int = Field(
        default=86400,
        ge=0,
        description="How long the push service keeps an undelivered message"
    )
    send_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        description="A send not resolved within this time is a transient failure"
    )
    max_concurrency: int = Field(
        default=20,
        ge=1,
        description="Concurrent sends per fan-out"
    )

    model_config = SettingsConfigDict(
        env_prefix="PUSH_",
        case_sensitive=False
    )

    @property
    def vapid_configured(self) -> bool:
        return bool(self.vapid_public_key and self.vapid_private_key)


class APIConfig(BaseSettings):
    """FastAPI server configuration."""

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v_upper

    model_config = SettingsConfigDict(
        env_prefix="API_",
        case_sensitive=False
    )


class Config(BaseSettings):
    """Main application configuration."""

    environment: str = Field(
        default="development",
        description="Application environment: development, staging, production"
    )
    debug: bool = Field(default=False)

    cohere: CohereConfig = Field(default_factory=CohereConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    push: PushConfig = Field(default_factory=PushConfig)
    api: APIConfig = Field(default_factory=APIConfig)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid_envs = ["development", "staging", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"environment must be one of {valid_envs}")
        return v.lower()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def validate_required(self) -> None:
        """Validate configuration that production cannot run without."""
        if self.environment == "production":
            if not self.push.vapid_configured:
                raise ValueError("PUSH_VAPID_PUBLIC_KEY and PUSH_VAPID_PRIVATE_KEY are required in production")


_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        config = Config()
        config.validate_required()
        _config = config
    return _config


def reload_config() -> Config:
    """Reload configuration from environment (useful for testing)."""
    global _config
    config = Config()
    config.validate_required()
    _config = config
    return _config
