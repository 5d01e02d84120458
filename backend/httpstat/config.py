"""
Configuration Management Module

Configures application parameters via environment variables or .env file.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application Configuration Class

    All configuration items can be overridden by environment variables, with names matching fields (uppercase).
    """

    # Application Config
    APP_NAME: str = "HTTPStat"
    VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Server Config
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Measurement Client Config
    # Request timeout (seconds), applied to connect, read, write and pool waits
    HTTP_TIMEOUT: int = 30
    # Verify the target's TLS certificate
    VERIFY_TLS: bool = True
    # User-Agent sent to the measured target
    USER_AGENT: str = "httpstat/1.0.0"
    # Refuse to connect to loopback/private/link-local addresses (SSRF protection)
    BLOCK_PRIVATE_ADDRESSES: bool = False

    # CORS Config
    # Comma-separated list of allowed origins, "*" allows any origin
    ALLOWED_ORIGINS: str = "*"

    # Rate Limit Config
    # Enable/disable rate limiting (useful for development)
    RATE_LIMIT_ENABLED: bool = True
    # Rate limit for measurement requests, per client
    RATE_LIMIT_MEASURE: str = "60/minute"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get application configuration (Singleton)

    Uses lru_cache to ensure configuration is loaded only once.

    Returns:
        Settings: Application configuration instance
    """
    return Settings()
