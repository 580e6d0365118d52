"""
SindicApp - Configuration Management

Centralized configuration using Pydantic Settings.
Secrets and connection strings are loaded from environment variables.

Security: No secrets are hardcoded. Use .env for local development.
A missing signing secret aborts application startup.
"""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    
    Attributes:
        JWT_SECRET: Signing secret for access tokens
        JWT_REFRESH_SECRET: Signing secret for refresh tokens (must differ)
        JWT_EXPIRES_IN: Access token lifetime ("15m", "1h", ...)
        JWT_REFRESH_EXPIRES_IN: Refresh token lifetime ("7d", ...)
        DATABASE_URL: SQLAlchemy URL for users, roles and sessions
        ALLOWED_ORIGINS: CORS allowed origins for the frontend
        SESSION_CLEANUP_INTERVAL_MINUTES: Period of the expired-session purge (0 disables)
    """
    
    # Tokens
    JWT_SECRET: str = ""  # Must be set via environment
    JWT_REFRESH_SECRET: str = ""  # Must be set via environment
    JWT_EXPIRES_IN: str = "15m"
    JWT_REFRESH_EXPIRES_IN: str = "7d"
    JWT_ALGORITHM: str = "HS256"
    
    # Passwords
    BCRYPT_WORK_FACTOR: int = 12
    
    # Database (PostgreSQL for production, SQLite for development)
    DATABASE_URL: str = "sqlite:///./sindicapp.db"
    
    # Maintenance
    SESSION_CLEANUP_INTERVAL_MINUTES: int = 60
    
    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]
    
    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
