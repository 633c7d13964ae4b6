"""
Shared configuration management for the Storefront services.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="STOREFRONT_",
        env_file=".env",
        case_sensitive=False,
        extra="allow",
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # External services
    postgres_dsn: str = Field(default="postgres://localhost:5432/storefront")
    redis_url: str = Field(default="redis://localhost:6379/0")

    # Persistence
    document_backend: Literal["postgres", "memory"] = Field(default="postgres")

    # Cache
    cache_backend: Literal["memory", "redis"] = Field(default="memory")
    redis_key_prefix: str = Field(default="storefront")

    # Catalog
    product_per_page: int = Field(default=8, ge=1)
    latest_products_limit: int = Field(default=5, ge=1)

    # Dashboard
    latest_transactions_limit: int = Field(default=4, ge=1)
    marketing_cost_ratio: float = Field(default=0.30, ge=0)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
