"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class EmiEngineConfig(BaseSettings):
    """EMI engine configuration"""

    # Database configuration
    database_url: str = "sqlite:///emi_engine.db"  # Default SQLite

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8091

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    # Late fee policy
    late_fee_percent_per_day: str = "2.0"  # Decimal as string, 2.0 means 2% of EMI per day
    grace_period_days: int = 3

    # Batch jobs
    sweep_interval_seconds: float = 86400.0  # Once a day
    reminder_days_ahead: int = 3
    enable_scheduler: bool = True

    # Identity service (payer name enrichment)
    identity_service_url: str = ""  # Empty = disabled
    identity_timeout: float = 2.0

    # Notification delivery
    notification_webhook_url: str = ""  # Empty = log only
    notification_timeout: float = 2.0

    class Config:
        env_prefix = "EMI_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = EmiEngineConfig()


def get_config() -> EmiEngineConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> EmiEngineConfig:
    """Reload configuration from environment"""
    global config
    config = EmiEngineConfig()
    return config
