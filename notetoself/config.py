"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Note to Self configuration. All values come from environment variables."""

    # Anthropic
    anthropic_api_key: str = Field(default="")
    claude_model: str = Field(default="claude-sonnet-4-5-20250929")
    model_max_tokens: int = Field(default=1024)
    model_timeout_seconds: float = Field(default=60.0)

    # Database
    database_path: Path = Field(default=Path("data/notetoself.db"))

    # Turso (hosted libSQL) — when set, overrides local database_path
    turso_database_url: str = Field(default="")
    turso_auth_token: str = Field(default="")

    # Calendar day boundaries (session rollover, quota windows, prompt date)
    timezone: str = Field(default="America/Chicago")

    # Daily send quotas (0 disables the quota for that surface)
    reflections_daily_limit: int = Field(default=3)
    chat_daily_limit: int = Field(default=0)

    # Journal retrieval hand-off
    retrieval_delay_seconds: float = Field(default=0.3)
    retrieval_timeout_seconds: float = Field(default=10.0)
    retrieval_recent_days: int = Field(default=7)
    retrieval_max_lines: int = Field(default=20)

    # Entitlements
    subscribed: bool = Field(default=False)

    # Telegram
    telegram_bot_token: str = Field(default="")
    allowed_user_ids: str = Field(default="")

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def get_allowed_user_ids(self) -> set[int]:
        """Parse ALLOWED_USER_IDS into a set of ints."""
        if not self.allowed_user_ids.strip():
            return set()
        return {int(uid.strip()) for uid in self.allowed_user_ids.split(",") if uid.strip()}


settings = Settings()
