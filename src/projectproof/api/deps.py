from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from projectproof.core.auth import SessionTokenAuth, parse_bearer
from projectproof.db.session import get_db_session
from projectproof.errors import Unauthenticated


def get_db() -> Generator[Session, None, None]:
    yield from get_db_session()


def get_bearer_token(authorization: str | None = Header(default=None)) -> str | None:
    return parse_bearer(authorization)


def get_auth(
    token: str | None = Depends(get_bearer_token),
    db: Session = Depends(get_db),
) -> SessionTokenAuth:
    return SessionTokenAuth(db, token)


def require_user_id(auth: SessionTokenAuth = Depends(get_auth)) -> str:
    try:
        return auth.current_user_id()
    except Unauthenticated as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc


def optional_user_id(auth: SessionTokenAuth = Depends(get_auth)) -> str | None:
    try:
        return auth.current_user_id()
    except Unauthenticated:
        return None
