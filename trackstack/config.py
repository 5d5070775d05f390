"""
Track Your Stack - Configuration Settings
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # =========================
    # Application Settings
    # =========================
    APP_NAME: str = "Track Your Stack"
    APP_ENV: str = "development"
    DEBUG: bool = True

    # =========================
    # Database - PostgreSQL
    # =========================
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "trackstack"
    POSTGRES_USER: str = "trackstack_user"
    POSTGRES_PASSWORD: str = "dev_password_123"
    # Direct DATABASE_URL from environment (overrides individual settings)
    DATABASE_URL: str = ""
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20
    DATABASE_ECHO: bool = False

    @property
    def database_url(self) -> str:
        """Get the async database URL."""
        if self.DATABASE_URL:
            url = self.DATABASE_URL
            # Ensure it uses asyncpg driver
            if url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            return url
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # =========================
    # Redis
    # =========================
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str = ""
    REDIS_DB: int = 0
    # Direct REDIS_URL from environment (overrides individual settings)
    REDIS_URL: str = ""

    @property
    def redis_url(self) -> str:
        """Get the Redis URL."""
        if self.REDIS_URL:
            return self.REDIS_URL
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # =========================
    # Market Data Provider
    # =========================
    ALPHA_VANTAGE_API_KEY: str = ""
    ALPHA_VANTAGE_BASE_URL: str = "https://www.alphavantage.co/query"
    ALPHA_VANTAGE_REQUESTS_PER_MINUTE: int = 5
    ALPHA_VANTAGE_REQUESTS_PER_DAY: int = 500
    MARKET_DATA_TIMEOUT_SECONDS: float = 10.0

    # =========================
    # Price / Rate Cache (seconds)
    # =========================
    PRICE_CACHE_TTL_STOCK: int = 15 * 60  # stock, etf, mutual fund
    PRICE_CACHE_TTL_CRYPTO: int = 5 * 60
    PRICE_CACHE_TTL_CURRENCY: int = 60 * 60

    # =========================
    # Concurrency Guard
    # =========================
    LOCK_BACKEND: str = "redis"  # "redis" or "memory" (single process only)
    LOCK_TIMEOUT_SECONDS: float = 30.0  # auto-release after this long
    LOCK_MAX_WAIT_SECONDS: float = 5.0
    LOCK_RETRY_INTERVAL_SECONDS: float = 0.1

    # =========================
    # Purchase Flow
    # =========================
    MAX_PURCHASE_ATTEMPTS: int = 3

    # =========================
    # Logging
    # =========================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""


# Create global settings instance
settings = Settings()
