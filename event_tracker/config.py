from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Literal

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    SERVICE_PORT: int = 8080
    MAX_EVENT_SIZE: int = 65536
    LOG_JSON: bool = True
    LOG_LEVEL: str = "INFO"
    # Persistence backend: "sql" (SQLAlchemy) or "memory"
    SINK_BACKEND: Literal["sql", "memory"] = "sql"
    DATABASE_URL: str = "sqlite+aiosqlite:///./events.db"
    # Force every write into log-only mode
    DRY_RUN: bool = False
    # Seed for event ID generation, unset means OS entropy
    ID_SEED: int | None = None
    # GitHub webhooks
    GITHUB_SECRET: str = "secret"
    # Slack
    SLACK_SIGNING_SECRET: str = "secret"
    SLACK_OAUTH_TOKEN: str = ""
    SLACK_LOG_CHANNEL: str = ""  # Empty disables channel logging
    SLACK_API_URL: str = "https://slack.com/api"
    SLACK_TIMEOUT_SECONDS: float = 10.0
    SLACK_REQUEST_MAX_AGE_SECONDS: int = 300
    TIME_ZONE: str = "America/New_York"

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
