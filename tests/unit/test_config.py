"""
Unit Tests - Configuration
Tests for application settings and config.
"""
import os
from unittest.mock import patch


class TestSettings:
    """Tests for Settings configuration class."""

    def test_default_app_name(self):
        from trackstack.config import Settings
        settings = Settings()
        assert settings.APP_NAME == "Track Your Stack"

    def test_environment_from_env(self):
        """conftest sets the testing environment."""
        from trackstack.config import Settings
        settings = Settings()
        assert settings.APP_ENV == "testing"
        assert settings.LOCK_BACKEND == "memory"

    def test_cache_ttls(self):
        """Crypto refreshes fastest, currency rates slowest."""
        from trackstack.config import Settings
        settings = Settings()
        assert settings.PRICE_CACHE_TTL_CRYPTO < settings.PRICE_CACHE_TTL_STOCK < settings.PRICE_CACHE_TTL_CURRENCY
        assert settings.PRICE_CACHE_TTL_CURRENCY == 3600

    def test_lock_defaults(self):
        from trackstack.config import Settings
        settings = Settings()
        assert settings.LOCK_MAX_WAIT_SECONDS < settings.LOCK_TIMEOUT_SECONDS
        assert settings.MARKET_DATA_TIMEOUT_SECONDS < settings.LOCK_TIMEOUT_SECONDS
        assert settings.MAX_PURCHASE_ATTEMPTS == 3

    def test_database_url_from_parts(self):
        from trackstack.config import Settings
        settings = Settings()
        assert settings.database_url.startswith("postgresql+asyncpg://")
        assert settings.database_url.endswith("/trackstack_test")

    def test_database_url_normalizes_driver(self):
        from trackstack.config import Settings
        with patch.dict(os.environ, {"DATABASE_URL": "postgresql://u:p@db:5432/app"}):
            settings = Settings()
        assert settings.database_url == "postgresql+asyncpg://u:p@db:5432/app"

    def test_redis_url_with_password(self):
        from trackstack.config import Settings
        with patch.dict(os.environ, {"REDIS_PASSWORD": "secret", "REDIS_HOST": "cache"}):
            settings = Settings()
        assert settings.redis_url == "redis://:secret@cache:6379/0"

    def test_redis_url_override(self):
        from trackstack.config import Settings
        with patch.dict(os.environ, {"REDIS_URL": "redis://other:6380/2"}):
            settings = Settings()
        assert settings.redis_url == "redis://other:6380/2"

    def test_database_pool_defaults(self):
        from trackstack.config import Settings
        settings = Settings()
        assert settings.DATABASE_POOL_SIZE == 10
        assert settings.DATABASE_MAX_OVERFLOW == 20
        assert settings.DATABASE_ECHO is False
