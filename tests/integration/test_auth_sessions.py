from __future__ import annotations

from datetime import timedelta

import pytest

from projectproof.core.auth import SessionTokenAuth, issue_session, parse_bearer, revoke_session
from projectproof.db.base import utcnow
from projectproof.db.models import AuthSession
from projectproof.db.repositories import hash_token
from projectproof.errors import Unauthenticated


def test_issued_token_resolves_to_its_user(db_session, signed_in) -> None:
    assert SessionTokenAuth(db_session, signed_in.token).current_user_id() == signed_in.user_id


def test_only_the_token_hash_is_stored(db_session, signed_in) -> None:
    stored = db_session.query(AuthSession).one()

    assert stored.token_hash == hash_token(signed_in.token)
    assert stored.token_hash != signed_in.token


@pytest.mark.parametrize("token", [None, "", "forged"])
def test_missing_or_unknown_token_is_unauthenticated(db_session, token) -> None:
    with pytest.raises(Unauthenticated):
        SessionTokenAuth(db_session, token).current_user_id()


def test_expired_session_is_unauthenticated(db_session, signed_in) -> None:
    stored = db_session.query(AuthSession).one()
    stored.expires_at = utcnow() - timedelta(minutes=1)
    db_session.commit()

    with pytest.raises(Unauthenticated):
        SessionTokenAuth(db_session, signed_in.token).current_user_id()


def test_revocation_is_seen_by_an_existing_auth_object(db_session, signed_in) -> None:
    auth = SessionTokenAuth(db_session, signed_in.token)
    auth.current_user_id()

    assert revoke_session(db_session, signed_in.token) is True
    with pytest.raises(Unauthenticated):
        auth.current_user_id()
    assert revoke_session(db_session, signed_in.token) is False


def test_empty_email_is_rejected(db_session) -> None:
    with pytest.raises(ValueError):
        issue_session(db_session, email="   ", ttl_min=5)


def test_parse_bearer() -> None:
    assert parse_bearer("Bearer abc") == "abc"
    assert parse_bearer("bearer  abc ") == "abc"
    assert parse_bearer("Basic abc") is None
    assert parse_bearer(None) is None
