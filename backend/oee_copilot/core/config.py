from pydantic_settings import BaseSettings
from typing import Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Application configuration settings."""

    # Application
    APP_NAME: str = "OEE Copilot"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    API_PREFIX: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    CORS_ORIGINS: str = "*"

    # Database
    DATABASE_URL: str = "sqlite:///./data/oee_copilot.db"

    # AI Services
    OPENAI_API_KEY: Optional[str] = None
    ANTHROPIC_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    ANTHROPIC_MODEL: str = "claude-sonnet-4-20250514"
    LLM_TIMEOUT_SECONDS: float = 30.0
    LLM_MAX_TOKENS: int = 800
    LLM_TEMPERATURE: float = 0.2
    LLM_CONTEXT_ROWS: int = 50

    # Chat pipeline
    LOG_FETCH_LIMIT: int = 10000
    HISTORY_LIMIT: int = 10

    # Ingestion
    MAX_UPLOAD_MB: int = 50

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def generative_api_key(self) -> str:
        """The configured credential for generative answers, if any."""
        return self.OPENAI_API_KEY or self.ANTHROPIC_API_KEY or ""


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
