"""Configuration settings for Warden."""

import os
import secrets
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    APP_NAME: str = os.getenv("APP_NAME", "Warden")

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./warden.db")

    # JWT session tokens
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_EXPIRE_DAYS: int = int(os.getenv("JWT_EXPIRE_DAYS", "7"))

    # Credentials and challenge tokens
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))
    RESET_TOKEN_TTL_MINUTES: int = int(os.getenv("RESET_TOKEN_TTL_MINUTES", "10"))
    CONFIRMATION_TOKEN_TTL_HOURS: int = int(os.getenv("CONFIRMATION_TOKEN_TTL_HOURS", "24"))

    # Outbound mail
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")
    SMTP_HOST: str = os.getenv("SMTP_HOST", "")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USER: str = os.getenv("SMTP_USER", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
    SMTP_FROM: str = os.getenv("SMTP_FROM", "")

    # Rate limits per route class
    RATE_LIMIT_GENERIC: str = os.getenv("RATE_LIMIT_GENERIC", "100 per 15 minutes")
    RATE_LIMIT_AUTH_SENSITIVE: str = os.getenv("RATE_LIMIT_AUTH_SENSITIVE", "5 per 15 minutes")
    RATE_LIMIT_EMAIL_TRIGGERING: str = os.getenv("RATE_LIMIT_EMAIL_TRIGGERING", "3 per 60 minutes")
    RATE_LIMIT_PROFILE_UPDATE: str = os.getenv("RATE_LIMIT_PROFILE_UPDATE", "10 per 60 minutes")
    RATE_LIMIT_ACCOUNT_SENSITIVE: str = os.getenv("RATE_LIMIT_ACCOUNT_SENSITIVE", "3 per 15 minutes")

    # Application
    CORS_ORIGINS: list[str] = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    def __init__(self) -> None:
        self._generated_secret = not self.JWT_SECRET_KEY
        if self._generated_secret:
            self.JWT_SECRET_KEY = secrets.token_urlsafe(32)

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        errors = []
        if self._generated_secret:
            errors.append("JWT_SECRET_KEY is not set - using auto-generated key (not persistent across restarts)")
        if self.BCRYPT_ROUNDS < 12 and not self.is_development:
            errors.append(f"BCRYPT_ROUNDS={self.BCRYPT_ROUNDS} is below the recommended cost of 12")
        if not self.SMTP_HOST:
            errors.append("SMTP_HOST is not set - confirmation and reset links are written to the log")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
