from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # core
    ENV: str = "dev"
    API_PREFIX: str = "/api"
    APP_NAME: str = "Exit School Off-Market Tool"
    LOG_LEVEL: str = "INFO"

    # database & redis
    # Plain string so both postgresql:// and sqlite:/// URLs are accepted
    DATABASE_URL: str
    REDIS_URL: str = "redis://localhost:6379/0"

    # vendor credentials are read from the encrypted api_credentials table;
    # this key derives the Fernet key used to decrypt them.
    CREDENTIALS_MASTER_KEY: str | None = None
    VENDOR_TIMEOUT_SECONDS: int = 30
    VENDOR_CACHE_TTL_SECONDS: int = 60 * 60 * 24
    # Comma-separated fallback order when no enrichment source is configured
    DEFAULT_ENRICHMENT_PROVIDERS: str = "hunter,apollo"

    # Clay (asynchronous, webhook based vendor)
    CLAY_WEBHOOK_URL: str | None = None
    CLAY_WEBHOOK_SECRET: str | None = None
    CLAY_CALLBACK_URL: str | None = None

    # auth / security
    API_AUTH_KEY: str | None = None
    FRONTEND_ORIGIN: str | None = None
    # Explicit debug-only switch for wide-open CORS in non-prod envs
    CORS_ALLOW_ALL_ORIGINS: bool = False

    # llm
    OPENROUTER_API_KEY: str | None = None
    OPENAI_API_KEY: str | None = None
    LLM_MODEL: str = "gpt-4o"
    LLM_TIMEOUT_SECONDS: int = 60
    # Hard cap on concurrent LLM calls per process
    LLM_MAX_CONCURRENCY: int = 4

    # reports
    REPORT_AUTO_ENRICH: bool = False
    REPORT_ANALYST_NAME: str = "Exit School AI Analyst"
    # Email dispatcher endpoint for "report ready" notifications
    REPORT_READY_WEBHOOK_URL: str | None = None
    REPORT_READY_WEBHOOK_TOKEN: str | None = None

    # background enrichment
    PENDING_ENRICHMENT_BATCH_SIZE: int = 50

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def default_enrichment_providers(self) -> list[str]:
        return [
            p.strip().lower()
            for p in self.DEFAULT_ENRICHMENT_PROVIDERS.split(",")
            if p.strip()
        ]


@lru_cache
def get_settings() -> Settings:
    return Settings()
