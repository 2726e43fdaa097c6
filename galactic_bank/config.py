"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class BankConfig(BaseSettings):
    """Intergalactic Bank configuration"""

    model_config = SettingsConfigDict(
        env_prefix="GALACTIC_BANK_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Database configuration
    database_url: str = "memory://"  # memory://, sqlite:///path.db or postgresql://...
    database_pool_min: int = 1
    database_pool_max: int = 10

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 3000
    api_prefix: str = "/api/v1"

    # Security configuration
    admin_api_key: str = "1234"

    # Rate limiting
    enable_rate_limiting: bool = True
    rate_limit_requests: int = 100
    rate_limit_window_seconds: float = 60.0

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    # Seed the workshop fixture when the store is empty
    seed_on_startup: bool = True


# Global configuration instance
config = BankConfig()


def get_config() -> BankConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> BankConfig:
    """Reload configuration from environment"""
    global config
    config = BankConfig()
    return config
