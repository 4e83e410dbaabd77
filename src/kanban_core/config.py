"""Application settings loaded from the environment."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration.

    Every field can be overridden with a ``KANBAN_``-prefixed environment
    variable (e.g. ``KANBAN_DATABASE_URL``) or a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="KANBAN_",
        env_file=".env",
        extra="ignore",
    )

    database_url: str = "sqlite:///./kanban.db"
    database_echo: bool = False

    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Pending invitations expire after this many days
    invitation_ttl_days: int = 7

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
