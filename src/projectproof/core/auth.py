from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from sqlalchemy.orm import Session

from projectproof.db.base import utcnow
from projectproof.db.repositories import Repository, hash_token
from projectproof.errors import Unauthenticated

logger = logging.getLogger(__name__)


class AuthProvider(Protocol):
    def current_user_id(self) -> str: ...


@dataclass(slots=True)
class IssuedSession:
    token: str
    user_id: str
    expires_at: datetime


class SessionTokenAuth:
    """Resolves a bearer token against the session table on every call."""

    def __init__(self, session: Session, token: str | None):
        self.repo = Repository(session)
        self.token = token or ""

    def current_user_id(self) -> str:
        if not self.token:
            raise Unauthenticated("no session token supplied")

        user_id = self.repo.get_active_session_user_id(hash_token(self.token))
        if user_id is None:
            raise Unauthenticated("session is missing, expired or revoked")
        return user_id


def issue_session(session: Session, *, email: str, ttl_min: int) -> IssuedSession:
    repo = Repository(session)
    user = repo.get_or_create_user(email)
    token = secrets.token_urlsafe(32)
    expires_at = utcnow() + timedelta(minutes=ttl_min)
    repo.create_auth_session(user_id=user.id, token_hash=hash_token(token), expires_at=expires_at)
    logger.info("Issued session user_id=%s ttl_min=%s", user.id, ttl_min)
    return IssuedSession(token=token, user_id=user.id, expires_at=expires_at)


def revoke_session(session: Session, token: str) -> bool:
    return Repository(session).revoke_auth_session(hash_token(token))


def parse_bearer(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()
