from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # core
    ENV: str = "dev"
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # database & redis
    # Plain strings so sqlite:// and redis:// URLs are always accepted
    DATABASE_URL: str
    REDIS_URL: str

    # auth / security
    API_AUTH_KEY: str | None = None
    FRONTEND_ORIGIN: str | None = None
    # Explicit debug-only switch for wide-open CORS in non-prod envs
    CORS_ALLOW_ALL_ORIGINS: bool = False

    # profile directory (remote service is optional; falls back to local tables)
    PROFILE_DIRECTORY_URL: str | None = None
    PROFILE_DIRECTORY_API_KEY: str | None = None
    PROFILE_DIRECTORY_TIMEOUT_SECONDS: int = 10

    # llm (AI brief drafting)
    OPENROUTER_API_KEY: str | None = None
    OPENAI_API_KEY: str | None = None
    LLM_MODEL: str = "openai/gpt-4.1-mini"
    # Hard cap on concurrent LLM calls per process
    LLM_MAX_CONCURRENCY: int = 4

    # workflow
    DEFAULT_CURRENCY: str = "USD"
    # Recent OPEN briefs scanned per manufacturer recommendation
    MATCHING_OPEN_BRIEF_WINDOW: int = 50
    BRIEF_PAGE_SIZE_DEFAULT: int = 20
    BRIEF_PAGE_SIZE_MAX: int = 100
    AUTO_REJECT_SIBLING_PROPOSALS: bool = True

    # outbox for failed cascade effects
    OUTBOX_SWEEP_SECONDS: int = 60
    OUTBOX_BATCH_SIZE: int = 100
    OUTBOX_MAX_ATTEMPTS: int = 8
    OUTBOX_BACKOFF_SECONDS: int = 30
    OUTBOX_RETENTION_DAYS: int = 14

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
