from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./julienned.db"
    redis_url: str = "redis://localhost:6379/0"

    # AI
    ai_mode: str = "mock"  # "mock" or "gemini"
    gemini_api_key: Optional[str] = None
    gemini_text_model: str = "gemini-2.5-flash"
    max_orchestration_turns: int = 10

    # Page fetching
    fetch_timeout_seconds: float = 15.0
    fetch_connect_timeout_seconds: float = 5.0
    image_timeout_seconds: float = 10.0
    scraper_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    # API
    rate_limit_default: str = "100/minute"
    extract_rate_limit: str = "30/minute"
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8081",
        "http://localhost",
        "http://127.0.0.1",
    ]


settings = Settings()
