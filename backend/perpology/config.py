"""
Application settings (Pydantic Settings).
"""
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

# .env next to backend/ (parent of perpology/)
_env_path = Path(__file__).resolve().parent.parent / ".env"


class Settings(BaseSettings):
    database_url: str = "sqlite:///./perpology.db"
    openai_api_key: str = ""  # OPENAI_API_KEY in .env
    ai_model: str = "openai:gpt-4o-mini"
    ai_max_tokens: int = 1500
    ai_temperature: float = 0.7
    # Market feeds (public endpoints, no credentials)
    binance_base_url: str = "https://api.binance.com/api/v3"
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    fear_greed_url: str = "https://api.alternative.me/fng/"
    market_cache_ttl_seconds: float = 30.0
    market_request_timeout_seconds: float = 5.0
    # Comma-separated extra origins for the production frontend
    cors_origins: str = ""
    # Create tables on startup (SQLite dev); use alembic upgrade head for Postgres
    auto_create_tables: bool = True

    class Config:
        env_file = _env_path
        extra = "ignore"

    @field_validator("openai_api_key", "cors_origins", mode="after")
    @classmethod
    def strip_values(cls, v: str) -> str:
        return (v or "").strip()


settings = Settings()
