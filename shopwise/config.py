"""
Configuration management for Shopwise Insight
"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "Shopwise Insight Dashboard"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    log_dir: str = "logs"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_workers: int = 4

    # Database (hosted Postgres connection string, or sqlite for local runs)
    database_url: str

    # Rows are scoped per user; used when a request has no X-User-Id header
    default_user_id: Optional[str] = None

    # Inventory
    low_stock_threshold: int = 10
    dead_stock_days: int = 90

    # Presentation
    currency_symbol: str = "₹"

    # Dashboard
    dashboard_cache_seconds: int = 60
    alert_lookback_limit: int = 5

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
