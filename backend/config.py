"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Supabase ─────────────────────────────────────────────────────────────
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""

    # ── CORS ─────────────────────────────────────────────────────────────────
    # Comma-separated list of allowed origins.
    ALLOWED_ORIGINS: str = "*"

    LOG_LEVEL: str = "INFO"

    # ── Trading ──────────────────────────────────────────────────────────────
    TRADE_EXPIRY_DAYS: int = 7

    # ── Pricing ──────────────────────────────────────────────────────────────
    EXCHANGE_RATE_TTL_SECONDS: int = 3600  # 1 hour
    DEFAULT_CURRENCY: str = "EUR"
    DEFAULT_PRICE_SOURCE: str = "cardmarket"
    MARKETPLACE_SEARCH_URL: str = "https://www.cardmarket.com/en/Pokemon/Products/Search?searchString="

    # ── Wishlist matching ────────────────────────────────────────────────────
    MATCHING_FETCH_ATTEMPTS: int = 2
    MATCHING_RETRY_BACKOFF_SECONDS: float = 0.5

    # ── Community ────────────────────────────────────────────────────────────
    COMMUNITY_STATS_TTL_SECONDS: int = 300  # 5 minutes

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
