"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "PeerStudy"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Database
    # A single SQLite file unless database_url_override points somewhere else
    database_url_override: str | None = None
    sqlite_path: str = "peerstudy.db"

    @computed_field
    @property
    def database_url(self) -> str:
        """Get async database URL. Uses override if provided, otherwise the SQLite file."""
        if self.database_url_override:
            url = self.database_url_override
            # Replace scheme for async driver
            if url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            elif url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql+asyncpg://", 1)
            elif url.startswith("sqlite://"):
                url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
            return url
        return f"sqlite+aiosqlite:///{self.sqlite_path}"

    @computed_field
    @property
    def database_url_sync(self) -> str:
        """Get sync database URL (for Alembic)."""
        url = self.database_url
        for async_driver, sync_scheme in (
            ("postgresql+asyncpg://", "postgresql://"),
            ("sqlite+aiosqlite://", "sqlite://"),
        ):
            if url.startswith(async_driver):
                return url.replace(async_driver, sync_scheme, 1)
        return url

    @computed_field
    @property
    def database_is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    # Auth / JWT
    jwt_secret_key: str  # Required - no default, must be set in .env
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7  # 7 days
    bcrypt_rounds: int = 10

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Cookies
    # Set to true when frontend and backend are on different domains
    cookie_cross_domain: bool = False

    # Uploads (served by an external static-file collaborator under /uploads)
    upload_dir: str = "uploads"
    upload_url_prefix: str = "/uploads"
    max_upload_size_bytes: int = 10 * 1024 * 1024  # 10MB

    # Matching
    match_limit: int = 10
    weak_score_threshold: int = 4
    strong_score_threshold: int = 7
    complementary_bonus: int = 10
    group_size_bonus: int = 5

    # Groups and chat
    default_group_name: str = "New Study Group"
    strict_group_formation: bool = False
    message_search_limit: int = 100

    # Notes
    dedupe_note_uploads: bool = True
    dedupe_chat_saves: bool = True
    notes_page_size: int = 20
    notes_max_page_size: int = 50

    # Realtime
    realtime_queue_size: int = 256


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def sanitize_error(error: Exception, *, generic_message: str = "An internal error occurred.") -> str:
    """
    Return a user-safe error message.

    In development, returns the full exception string for debugging.
    In staging/production, returns a generic message to avoid leaking internals.
    """
    settings = get_settings()
    if settings.environment == "development":
        return str(error)
    return generic_message
