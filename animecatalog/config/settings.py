"""Application settings loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Edge gate
    allowed_origin: str = ""  # Exact Origin value accepted from browsers
    api_secret: str = ""  # Shared secret for signed episode links
    client_ip_header: str = "CF-Connecting-IP"  # Set by the trusted proxy
    bot_marker: str = "Mozilla"  # User-Agent substring required by the bot filter

    # Rate limiting (fixed window per client IP)
    rate_limit_max_requests: int = 40
    rate_limit_window_seconds: int = 60
    rate_limit_key_prefix: str = "rl:"

    # Signed links
    signature_max_age_seconds: int = 60
    max_episode_number: int = 2000

    # Catalog
    database_url: str = "sqlite+aiosqlite:///./catalog.db"
    page_size: int = 20

    # Key-value store for rate limit counters
    kv_store_backend: str = "memory"  # "memory" | "redis" | "dynamodb"
    redis_url: str = "redis://localhost:6379/0"
    dynamodb_table_name: str = "anime-catalog-ratelimit"
    aws_region: str = "us-east-1"

    # Catalog sync
    anilist_url: str = "https://graphql.anilist.co"
    sync_pages: int = 3
    sync_per_page: int = 50
    sync_timeout_seconds: float = 30.0

    # Logging
    log_level: str = "INFO"
    audit_log_file: str = ""  # Empty = stdout only

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
