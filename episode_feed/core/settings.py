from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database backing the episode cache
    database_url: str = "sqlite:///./episode_feed.db"
    debug: bool = False

    # Application
    app_name: str = "Episode Feed"
    log_level: str = "INFO"
    logs_dir: Path = Path("logs")

    # Episodes API
    api_base_url: str = "https://software-enginnering-daily-api.herokuapp.com/api"
    http_timeout_seconds: float = 30.0
    http_max_retries: int = 3
    http_user_agent: str = "EpisodeFeed/1.0"

    # Paging
    page_size: int = 10

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        if not v:
            raise ValueError("DATABASE_URL must be set")
        return v

    @field_validator("page_size")
    @classmethod
    def validate_page_size(cls, v):
        if v <= 0:
            raise ValueError("PAGE_SIZE must be positive")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
