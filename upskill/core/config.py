"""
UpSkill Backend Configuration
Environment driven settings, validated once at startup
"""

import os
from typing import List, Optional


class Config:
    """Application settings read from the environment"""

    def __init__(self):
        self.APP_ENV = os.getenv("APP_ENV", "local").lower()

        # MongoDB
        self.MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
        self.MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "upskill")
        self.MONGO_TRANSACTIONS = _as_bool(os.getenv("MONGO_TRANSACTIONS", "false"))

        # Tokens
        self.JWT_SECRET = os.getenv("JWT_SECRET", "")
        self.JWT_ALGORITHM = "HS256"
        self.ACCESS_TOKEN_EXPIRE_HOURS = int(os.getenv("ACCESS_TOKEN_EXPIRE_HOURS", "24"))
        self.REFRESH_TOKEN_EXPIRE_DAYS = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))
        self.RESET_TOKEN_EXPIRE_MINUTES = int(os.getenv("RESET_TOKEN_EXPIRE_MINUTES", "15"))
        self.BCRYPT_ROUNDS = 10

        # Links in emails
        self.FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173").rstrip("/")

        # SMTP
        self.EMAIL_HOST = os.getenv("EMAIL_HOST", "")
        self.EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
        self.EMAIL_USER = os.getenv("EMAIL_USER", "")
        self.EMAIL_PASS = os.getenv("EMAIL_PASS", "")
        self.EMAIL_FROM = os.getenv("EMAIL_FROM") or self.EMAIL_USER

        # Daily reminder job, HH:MM in UTC
        self.REMINDER_TIME = os.getenv("REMINDER_TIME", "18:00")

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.CORS_ORIGINS = self._parse_origins(os.getenv("CORS_ORIGINS", "*"))

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def cookie_secure(self) -> bool:
        return self.is_production

    @property
    def reminder_hour_minute(self) -> tuple:
        hour, _, minute = self.REMINDER_TIME.partition(":")
        return int(hour), int(minute or 0)

    def missing_required(self) -> List[str]:
        """Names of variables that must be set before serving traffic"""
        missing = []
        if not self.JWT_SECRET:
            missing.append("JWT_SECRET")
        if self.is_production:
            for key in ("EMAIL_HOST", "EMAIL_USER", "EMAIL_PASS"):
                if not getattr(self, key):
                    missing.append(key)
        return missing

    def validate(self) -> None:
        """Crash in production on missing settings"""
        missing = self.missing_required()
        if missing and self.is_production:
            raise RuntimeError(
                f"FATAL: Missing required environment variables: {', '.join(missing)}"
            )
        if not self.JWT_SECRET:
            # Local runs get a throwaway secret; tokens die with the process
            self.JWT_SECRET = "upskill-local-dev-secret"

    @staticmethod
    def _parse_origins(value: str) -> List[str]:
        origins = [origin.strip() for origin in value.split(",") if origin.strip()]
        return origins or ["*"]


def _as_bool(value: Optional[str]) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes", "on")


_config: Optional[Config] = None


def get_config() -> Config:
    """Process wide settings instance"""
    global _config
    if _config is None:
        _config = Config()
        _config.validate()
    return _config


def reset_config() -> None:
    """Drop the cached settings so the next call re-reads the environment"""
    global _config
    _config = None
