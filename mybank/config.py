"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class MyBankConfig(BaseSettings):
    """MyBank ledger configuration"""
    
    # Administrator credentials (compared directly, never hashed)
    admin_username: str = "mywebhosting"
    admin_password: str = "password123"
    
    # Storage configuration
    storage_backend: str = "json"  # memory, json or sqlite
    ledger_path: str = "db.json"
    snapshot_path: str = "users.json"
    
    # Business rules configuration
    max_transfer_amount: str = "20"
    
    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 3000
    sync_port: int = 4000
    
    # Mirror replication configuration
    primary_url: str = "http://localhost:4000"
    mirror_snapshot_path: str = "mirror_users.json"
    sync_interval_seconds: float = 20.0
    sync_timeout_seconds: float = 5.0
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stderr
    
    class Config:
        env_prefix = "MYBANK_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = MyBankConfig()


def get_config() -> MyBankConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> MyBankConfig:
    """Reload configuration from environment"""
    global config
    config = MyBankConfig()
    return config
