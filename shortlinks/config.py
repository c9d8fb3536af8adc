"""Configuration management for the redirect service.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram: get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌──────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬───────┘
      HIT? │
     ┌─────┴──────┐
     │ NO         │ YES
     ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1: Import**::
    from shortlinks.config import get_settings

**Step 2: Get settings**::
    settings = get_settings()
    redis_url = settings.REDIS_URL

**Step 3: Access values**::
    print(f"Group length limit: {settings.GROUP_MAX_LENGTH}")

Key Behaviours
===============
- Settings are cached after first access for performance.
- Environment variables override defaults automatically.
- ADMIN_API_KEY has no default; the admin API refuses requests until it is set.

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "shortlinks"
    LOG_LEVEL: str = "INFO"

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"
    REDIS_REPLICA_URL: str = ""
    KEY_PREFIX: str = "shortlinks"

    # Admin authentication
    ADMIN_API_KEY: str = ""
    ADMIN_API_KEY_HEADER: str = "X-Admin-Api-Key"

    # Identifier rules
    GROUP_MAX_LENGTH: int = 32
    SLUG_MAX_LENGTH: int = 128

    # Pagination over index partitions
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 50

    CORS_ALLOW_ORIGINS: list[str] = ["*"]

    # Offline reconciliation
    RECONCILE_SCAN_COUNT: int = 500

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
