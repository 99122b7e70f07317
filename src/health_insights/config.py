"""Configuration management using pydantic-settings."""

import threading
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Valid log levels
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class EngineSettings(BaseSettings):
    """Insight engine settings."""

    model_config = SettingsConfigDict(env_prefix="INSIGHTS_")

    window_days: int = Field(default=30, description="Days of history read per run")
    max_insights: int = Field(default=20, description="Maximum insights returned per run")
    dedup_key_length: int = Field(
        default=20, description="Prefix length of the normalized title used for dedup"
    )
    starter_threshold: int = Field(
        default=10,
        description="Record count below which a non-empty history gets the keep-logging insight",
    )
    default_timezone: str = Field(
        default="UTC", description="Timezone used when the user's zone cannot be resolved"
    )

    @field_validator("window_days")
    @classmethod
    def validate_window_days(cls, v: int) -> int:
        """Validate the analysis window is reasonable."""
        if not 1 <= v <= 365:
            raise ValueError(f"Window must be between 1 and 365 days, got {v}")
        return v

    @field_validator("max_insights", "dedup_key_length")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate limits are positive."""
        if v < 1:
            raise ValueError(f"Value must be at least 1, got {v}")
        return v

    @field_validator("starter_threshold")
    @classmethod
    def validate_starter_threshold(cls, v: int) -> int:
        """Validate starter threshold is positive."""
        if v < 1:
            raise ValueError(f"Starter threshold must be at least 1, got {v}")
        return v

    @field_validator("default_timezone")
    @classmethod
    def validate_default_timezone(cls, v: str) -> str:
        """Validate the fallback timezone is a known IANA name."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone '{v}'") from e
        return v


class AppSettings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_prefix="APP_")

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or console")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        normalized = v.upper()
        if normalized not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: {', '.join(sorted(VALID_LOG_LEVELS))}"
            )
        return normalized

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format is valid."""
        normalized = v.lower()
        if normalized not in ("json", "console"):
            raise ValueError(f"Invalid log format '{v}'. Must be 'json' or 'console'")
        return normalized


class TracingSettings(BaseSettings):
    """OpenTelemetry tracing settings."""

    model_config = SettingsConfigDict(env_prefix="OTEL_")

    enabled: bool = Field(default=False, description="Enable OpenTelemetry tracing")
    service_name: str = Field(default="health-insights", description="Service name for traces")
    endpoint: str | None = Field(
        default=None, description="OTLP/HTTP traces endpoint; exporter default when unset"
    )
    sample_ratio: float = Field(default=1.0, description="Fraction of engine runs traced")

    @field_validator("sample_ratio")
    @classmethod
    def validate_sample_ratio(cls, v: float) -> float:
        """Validate the sampling ratio is a fraction."""
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"Sample ratio must be between 0 and 1, got {v}")
        return v


class Settings(BaseSettings):
    """Combined application settings."""

    engine: EngineSettings = Field(default_factory=EngineSettings)
    app: AppSettings = Field(default_factory=AppSettings)
    tracing: TracingSettings = Field(default_factory=TracingSettings)

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            engine=EngineSettings(),
            app=AppSettings(),
            tracing=TracingSettings(),
        )


# Global settings instance with thread-safe initialization
_settings: Settings | None = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Get or create the global settings instance.

    Thread-safe singleton pattern using double-checked locking.
    """
    global _settings
    if _settings is None:
        with _settings_lock:
            # Double-check after acquiring lock
            if _settings is None:
                _settings = Settings.load()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    with _settings_lock:
        _settings = None
