"""
Build-time settings using Pydantic Settings.
Reads from environment variables (and an optional .env file).

These values are resolved once per transformation run; nothing here is
consulted by the generated code while an instrumented function executes.
"""

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Transformation settings."""

    model_config = ConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Tracing integration (wraps generated bodies in a scoped span)
    tracing_enabled: bool = Field(default=False, alias="HEMERA_TRACING")

    # Decorator names recognised by the source expander
    markers: list[str] = Field(default=["hemera", "measure_time"], alias="HEMERA_MARKERS")

    # Logging for the transformation pipeline itself
    log_level: str = Field(default="WARNING", alias="HEMERA_LOG_LEVEL")


# Global settings instance
settings = Settings()
