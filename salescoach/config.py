"""Application configuration with validation."""
from pathlib import Path
from typing import Optional, Literal
from functools import lru_cache
from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_RUBRIC_PATH = Path(__file__).parent / "data" / "default_rubric.json"


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "SalesCoach Assessment"
    APP_VERSION: str = "1.0.0"
    APP_ENV: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Persistence
    STORE_BACKEND: Literal["memory", "snowflake"] = "memory"

    # Snowflake (only required for the snowflake backend)
    SNOWFLAKE_ACCOUNT: Optional[str] = None
    SNOWFLAKE_USER: Optional[str] = None
    SNOWFLAKE_PASSWORD: Optional[SecretStr] = None
    SNOWFLAKE_DATABASE: Optional[str] = None
    SNOWFLAKE_SCHEMA: Optional[str] = None
    SNOWFLAKE_WAREHOUSE: Optional[str] = None
    SNOWFLAKE_ROLE: Optional[str] = None

    # Rubric
    RUBRIC_PATH: Path = DEFAULT_RUBRIC_PATH

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_TTL_RUBRIC: int = Field(default=86400, ge=0)  # 24 hours

    # Scoring / presentation
    BENCHMARK_LEVEL: int = Field(default=3, ge=1, le=4)
    AUTO_FLUSH_SCORES: bool = True

    @model_validator(mode="after")
    def validate_snowflake_settings(self):
        """Snowflake credentials are mandatory once the snowflake backend is selected."""
        if self.STORE_BACKEND == "snowflake":
            missing = [
                name for name in (
                    "SNOWFLAKE_ACCOUNT", "SNOWFLAKE_USER", "SNOWFLAKE_PASSWORD",
                    "SNOWFLAKE_DATABASE", "SNOWFLAKE_WAREHOUSE",
                )
                if getattr(self, name) is None
            ]
            if missing:
                raise ValueError(f"Snowflake backend requires: {', '.join(missing)}")
        return self

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure production is not running in debug mode."""
        if self.APP_ENV == "production" and self.DEBUG:
            raise ValueError("DEBUG must be False in production")
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
