"""Application configuration using pydantic-settings."""

import re
from functools import lru_cache
from typing import Literal

from pydantic import Field, RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict

from siteaudit import __version__

# Zero-width characters that sneak into pasted API keys
_ZERO_WIDTH_RE = re.compile("[\u200b-\u200d\ufeff]")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: Literal["development", "production", "test"] = "development"
    log_level: str = "INFO"

    # PageSpeed Insights
    psi_api_key: str | None = None
    psi_proxy_url: str | None = None
    psi_strategy: Literal["mobile", "desktop", "both"] = "both"

    # Target site
    default_test_url: str = "http://localhost/"
    stylesheet_url: str | None = None  # Fallback asset for the browser-cache probe
    wp_cache_constant: bool = False  # Mirrors define('WP_CACHE', true) in wp-config.php
    seo_basics_enabled: bool = False

    # Site inventory (WordPress database)
    wordpress_database_url: str | None = None
    wordpress_table_prefix: str = "wp_"
    wordpress_content_dir: str | None = None  # wp-content, for cache drop-in detection

    # Redis (result cache + last-audit snapshot)
    redis_url: RedisDsn | None = None
    result_cache_ttl_seconds: int = 300  # 5 minutes

    # HTTP
    user_agent: str = f"SiteAudit/{__version__} (+https://github.com/site-audit/site-audit)"
    fetch_timeout: float = 15.0
    head_timeout: float = 12.0
    ttfb_timeout: float = 15.0
    psi_timeout: float = 40.0
    proxy_timeout: float = 20.0
    max_redirects: int = 5

    # Explicit inventory facts used when no database is configured
    inventory_file: str | None = Field(default=None, description="Path to a JSON inventory")

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.env == "production"

    @property
    def psi_key(self) -> str:
        """API key with whitespace and zero-width characters removed."""
        return clean_api_key(self.psi_api_key)

    @property
    def psi_available(self) -> bool:
        """Check if PageSpeed data can be requested (key or proxy configured)."""
        return bool(self.psi_key or (self.psi_proxy_url or "").strip())


def clean_api_key(key: str | None) -> str:
    """Strip whitespace and zero-width characters from an API key."""
    key = _ZERO_WIDTH_RE.sub("", (key or "").strip())
    return re.sub(r"\s+", "", key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
