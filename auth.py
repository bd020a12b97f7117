"""
Admin authentication backed by server-side sessions.

The browser only holds an opaque session id in a cookie; the username and
expiry live in the "session" collection.
"""
import hmac
import secrets
from datetime import timedelta
from typing import Any, Dict, Optional

import structlog
from fastapi import Depends, Request, Response
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import Settings, get_settings
from database import as_utc, get_db, now
from errors import InvalidCredentials, SessionError, Unauthorized
from schemas import Session

logger = structlog.get_logger(__name__)


class SessionStore:
    def __init__(self, db: Database, ttl: timedelta):
        self.collection = db["session"]
        self.ttl = ttl

    def create(self, username: str) -> str:
        sid = secrets.token_urlsafe(32)
        stamp = now()
        session = Session(sid=sid, username=username, expires_at=stamp + self.ttl)
        self.collection.insert_one({**session.model_dump(), "created_at": stamp, "updated_at": stamp})
        return sid

    def get(self, sid: str) -> Optional[Dict[str, Any]]:
        """Return the live session for sid, or None if missing or expired."""
        doc = self.collection.find_one({"sid": sid})
        if not doc:
            return None
        # the TTL monitor only runs once a minute
        if as_utc(doc["expires_at"]) <= now():
            return None
        return doc

    def destroy(self, sid: str) -> None:
        try:
            self.collection.delete_one({"sid": sid})
        except PyMongoError as exc:
            raise SessionError("Could not log out") from exc


class AuthGate:
    def __init__(self, settings: Settings, store: SessionStore):
        self.settings = settings
        self.store = store

    def _credentials_match(self, username: str, password: str) -> bool:
        user_ok = hmac.compare_digest(
            username.encode("utf-8"), self.settings.admin_username.encode("utf-8")
        )
        pass_ok = hmac.compare_digest(
            password.encode("utf-8"), self.settings.admin_password.encode("utf-8")
        )
        return user_ok and pass_ok

    def login(self, username: str, password: str, previous_sid: Optional[str] = None) -> str:
        if not self._credentials_match(username or "", password or ""):
            logger.warning("admin_login_failed", username=username)
            raise InvalidCredentials()

        # a fresh id on every login so a planted cookie never becomes authenticated
        if previous_sid:
            self.store.destroy(previous_sid)
        sid = self.store.create(username)
        logger.info("admin_logged_in", username=username)
        return sid

    def verify(self, sid: Optional[str]) -> Optional[str]:
        if not sid:
            return None
        session = self.store.get(sid)
        if session is None:
            return None
        return session["username"]

    def logout(self, sid: Optional[str]) -> None:
        if sid:
            self.store.destroy(sid)
        logger.info("admin_logged_out")


def set_session_cookie(response: Response, settings: Settings, sid: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=sid,
        max_age=int(settings.session_ttl.total_seconds()),
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


def get_auth_gate(
    db: Database = Depends(get_db), settings: Settings = Depends(get_settings)
) -> AuthGate:
    return AuthGate(settings, SessionStore(db, settings.session_ttl))


def session_id(request: Request, settings: Settings = Depends(get_settings)) -> Optional[str]:
    return request.cookies.get(settings.session_cookie_name)


def require_admin(
    sid: Optional[str] = Depends(session_id), gate: AuthGate = Depends(get_auth_gate)
) -> str:
    """Guard for mutating endpoints; returns the admin username."""
    username = gate.verify(sid)
    if not username:
        raise Unauthorized()
    return username
