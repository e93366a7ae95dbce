"""
Application settings

Read from the environment (and a .env file when present). Variable names
follow the deployment that already exists: DB, SECRETKEY, EMAIL and
EMAILPASSWORD are accepted alongside the longer names.
"""

import os
from typing import Optional, List

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables from .env file (noop if not present)
load_dotenv()

MIN_BCRYPT_ROUNDS = 10


def _split(value: str | None) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseModel):
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "alphaingen"
    port: int = 4000
    secret_key: str = Field("change-me", min_length=1)
    token_ttl_minutes: Optional[int] = Field(None, ge=1)
    bcrypt_rounds: int = MIN_BCRYPT_ROUNDS
    moderator_emails: List[str] = Field(default_factory=list)
    mail_user: Optional[str] = None
    mail_password: Optional[str] = None
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 465
    smtp_timeout_seconds: float = Field(10.0, gt=0)
    mongo_timeout_ms: int = Field(5000, ge=1)
    log_level: str = "INFO"
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    @property
    def effective_bcrypt_rounds(self) -> int:
        return max(self.bcrypt_rounds, MIN_BCRYPT_ROUNDS)

    @classmethod
    def from_env(cls) -> "Settings":
        values = {
            "database_url": os.getenv("DATABASE_URL") or os.getenv("DB"),
            "database_name": os.getenv("DATABASE_NAME"),
            "port": os.getenv("PORT"),
            "secret_key": os.getenv("SECRET_KEY") or os.getenv("SECRETKEY"),
            "token_ttl_minutes": os.getenv("TOKEN_TTL_MINUTES"),
            "bcrypt_rounds": os.getenv("BCRYPT_ROUNDS"),
            "mail_user": os.getenv("EMAIL"),
            "mail_password": os.getenv("EMAILPASSWORD"),
            "smtp_host": os.getenv("SMTP_HOST"),
            "smtp_port": os.getenv("SMTP_PORT"),
            "smtp_timeout_seconds": os.getenv("SMTP_TIMEOUT_SECONDS"),
            "mongo_timeout_ms": os.getenv("MONGO_TIMEOUT_MS"),
            "log_level": os.getenv("LOG_LEVEL"),
        }
        # Unset variables fall back to the model defaults
        values = {k: v for k, v in values.items() if v not in (None, "")}
        if os.getenv("MODERATOR_EMAILS"):
            values["moderator_emails"] = _split(os.getenv("MODERATOR_EMAILS"))
        if os.getenv("CORS_ORIGINS"):
            values["cors_origins"] = _split(os.getenv("CORS_ORIGINS"))
        return cls(**values)
