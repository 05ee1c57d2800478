"""
Shared configuration management for the laundromatzat portfolio backend.
"""

from pathlib import Path
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
    "https://laundromatzat.com",
    "https://www.laundromatzat.com",
]


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        populate_by_name=True,
    )

    # Environment
    env: str = Field(default="local", validation_alias="PORTFOLIO_ENV")
    log_level: str = Field(default="info", validation_alias="PORTFOLIO_LOG_LEVEL")
    log_json: bool = Field(default=True, validation_alias="PORTFOLIO_LOG_JSON")

    # Relational store
    database_url: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")
    sqlite_path: Optional[str] = Field(default=None, validation_alias="SQLITE_PATH")

    # Security
    jwt_secret: str = Field(default="change-me", validation_alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
    password_hash_rounds: int = Field(default=10, validation_alias="PASSWORD_HASH_ROUNDS")
    allowed_origins: List[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS),
        validation_alias="PORTFOLIO_ALLOWED_ORIGINS",
    )

    # Build info
    git_sha: str = Field(default="local", validation_alias="GITHUB_SHA")

    # Tool clients
    api_base_url: str = Field(
        default="http://localhost:4000",
        validation_alias=AliasChoices("API_BASE_URL", "VITE_API_BASE_URL"),
    )
    store_dir: Optional[str] = Field(default=None, validation_alias="PORTFOLIO_STORE_DIR")
    store_quota_bytes: Optional[int] = Field(default=None, validation_alias="PORTFOLIO_STORE_QUOTA_BYTES")

    # Third-party AI services
    gemini_api_key: Optional[str] = Field(default=None, validation_alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
    lm_studio_url: str = Field(default="http://localhost:1234/v1", validation_alias="LM_STUDIO_API_URL")
    lm_studio_model: str = Field(default="phi-3-mini-4k-instruct", validation_alias="LM_STUDIO_MODEL")
    lm_studio_api_key: str = Field(default="lm-studio", validation_alias="LM_STUDIO_API_KEY")

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    def resolved_database_url(self) -> str:
        """Async SQLAlchemy URL: PostgreSQL when DATABASE_URL is set, SQLite otherwise."""
        if self.database_url:
            url = self.database_url
            for prefix in ("postgres://", "postgresql://"):
                if url.startswith(prefix):
                    return "postgresql+asyncpg://" + url[len(prefix):]
            return url

        if self.sqlite_path:
            path = Path(self.sqlite_path)
        elif self.is_production:
            path = Path("/tmp/dev.sqlite3")
        else:
            path = Path("data") / "dev.sqlite3"
        path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite+aiosqlite:///{path}"


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
