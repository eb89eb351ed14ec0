"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Database
    database_url: str = "postgresql+asyncpg://storefront:storefront_dev_password@db:5432/storefront"

    # Cache
    redis_url: str = "redis://redis:6379/0"
    cache_key_prefix: str = "ecommerce:"
    product_cache_ttl: int = 3600
    search_cache_ttl: int = 1800
    featured_cache_ttl: int = 3600
    category_cache_ttl: int = 3600

    # Blob storage (Supabase Storage)
    supabase_url: str = "http://supabase:8000"
    supabase_service_key: str = "dev-service-key-change-in-production"
    storage_bucket: str = "products"
    storage_timeout: float = 30.0

    # Catalog rules
    max_image_bytes: int = 5 * 1024 * 1024
    allowed_image_types: list[str] = ["image/jpeg", "image/png", "image/webp"]
    default_page_size: int = 10
    max_page_size: int = 100
    featured_limit: int = 10
    featured_min_rating: float = 4.0
    recent_review_limit: int = 3
    low_stock_threshold: int = 5

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
