"""
Runtime configuration for the Onyxia backend.

Values come from the environment (a local .env file is honoured) and are read
once at startup into a Settings object that is handed to the app and the auth
gate.
"""
import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List

from dotenv import load_dotenv
from fastapi import Request


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "onyxia"
    admin_username: str = "admin"
    admin_password: str = "admin"
    session_cookie_name: str = "onyxia.sid"
    session_ttl_days: int = 7
    cookie_secure: bool = False
    environment: str = "development"
    log_level: str = ""
    upload_dir: str = "uploads"
    cors_origins: List[str] = field(default_factory=lambda: ["http://onyxia.store"])
    port: int = 5001

    @property
    def session_ttl(self) -> timedelta:
        return timedelta(days=self.session_ttl_days)

    @property
    def debug(self) -> bool:
        # error details are only exposed outside production
        return self.environment.lower() != "production"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        origins = os.getenv("CORS_ORIGINS", "http://onyxia.store")
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_name=os.getenv("DATABASE_NAME", cls.database_name),
            admin_username=os.getenv("ADMIN_USERNAME", cls.admin_username),
            admin_password=os.getenv("ADMIN_PASSWORD", cls.admin_password),
            session_cookie_name=os.getenv("SESSION_COOKIE_NAME", cls.session_cookie_name),
            session_ttl_days=int(os.getenv("SESSION_TTL_DAYS", cls.session_ttl_days)),
            cookie_secure=_as_bool(os.getenv("COOKIE_SECURE", "false")),
            environment=os.getenv("ENVIRONMENT", cls.environment),
            log_level=os.getenv("LOG_LEVEL", ""),
            upload_dir=os.getenv("UPLOAD_DIR", cls.upload_dir),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            port=int(os.getenv("PORT", cls.port)),
        )


def get_settings(request: Request) -> Settings:
    """FastAPI dependency returning the settings bound at startup."""
    return request.app.state.settings
