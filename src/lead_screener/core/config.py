"""Application configuration using Pydantic Settings."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    """Application settings."""

    # Application
    APP_NAME: str = "Lead Screener"
    APP_VERSION: str = "1.0.0"
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "./logs"

    # API
    API_PREFIX: str = "/api"
    CORS_ORIGINS: List[str] = ["*"]

    # Crawler
    CRAWLER_TIMEOUT: float = 15.0
    CRAWLER_SUBPAGE_TIMEOUT: float = 10.0
    CRAWLER_MAX_REDIRECTS: int = 3
    CRAWLER_USER_AGENT: Optional[str] = None
    CRAWLER_PROXIES: List[str] = []
    CRAWLER_PROXY_STRATEGY: str = "round_robin"  # round_robin, random
    PROXY_TEST_URL: str = "https://httpbin.org/ip"
    PROXY_TEST_TIMEOUT: float = 10.0
    PAGE_CONTENT_LIMIT: int = 1500
    SITE_CONTENT_LIMIT: int = 6000
    SUMMARY_CONTENT_LIMIT: int = 2000
    FOOTER_CONTENT_LIMIT: int = 300
    COMPANY_BLURB_LIMIT: int = 500
    MAX_KEY_PAGES: int = 4
    KEY_PAGE_CONTENT_STOP: int = 5000
    KEY_PAGE_MIN_CONTENT: int = 50
    KEY_PAGE_DELAY: float = 0.5

    # LLM (endpoint, model and key are supplied per request)
    LLM_TIMEOUT: float = 45.0
    LLM_TEMPERATURE: float = 0.1
    LLM_MAX_TOKENS: int = 800
    LLM_EXTRACTION_TIMEOUT: float = 30.0
    LLM_CHECK_TIMEOUT: float = 15.0
    LLM_CHECK_MAX_TOKENS: int = 50
    LLM_CHECK_PROMPT: str = "Connection test, reply with \"connected\"."
    LLM_SYSTEM_PROMPT: str = (
        "You are a professional website analyst who decides whether a website "
        "belongs to a target customer. Reply strictly with a JSON object of the "
        "form {\"result\": \"Y\" or \"N\", \"reason\": \"...\"} and nothing else."
    )

    # Background tasks
    ACTIVE_TASK_POLICY: str = "merge"  # merge, always_new
    MAX_TASKS: int = 50
    MAX_RESULTS_PER_TASK: int = 10000
    MAX_ERRORS_PER_TASK: int = 5000
    CLEANUP_INTERVAL: float = 120.0
    TASK_RETENTION_SECONDS: float = 7 * 24 * 60 * 60
    MANUAL_CLEANUP_AGE_SECONDS: float = 60 * 60
    BATCH_SIZE: int = 20
    BATCH_DELAY: float = 0.2
    MEMORY_CHECK_INTERVAL: int = 50
    CONCURRENT_LIMIT_NORMAL: int = 8
    CONCURRENT_LIMIT_LARGE: int = 4
    LARGE_BATCH_THRESHOLD: int = 1000
    HUGE_BATCH_THRESHOLD: int = 5000
    HIGH_MEMORY_PAUSE: float = 2.0
    CRITICAL_PAUSE: float = 5.0
    MEMORY_CLEANUP_MB: float = 300.0
    MEMORY_HIGH_MB: float = 400.0
    MEMORY_CRITICAL_MB: float = 600.0

    # Storage
    STORAGE_BACKEND: str = "auto"  # auto, file, memory, kv, supabase
    STORAGE_DIR: str = "./data"
    STORAGE_VERSION: int = 1
    KV_REST_API_URL: Optional[str] = None
    KV_REST_API_TOKEN: Optional[str] = None
    SUPABASE_URL: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None
    STORAGE_TIMEOUT: float = 10.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"


settings = Settings()
