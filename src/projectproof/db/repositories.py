from __future__ import annotations

import hashlib
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from projectproof.db.base import utcnow
from projectproof.db.models import AuthSession, Profile, Project, User


def canonicalize_email(email: str) -> str:
    return email.strip().lower()


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class Repository:
    def __init__(self, session: Session):
        self.session = session

    def get_or_create_user(self, email: str) -> User:
        email = canonicalize_email(email)
        if not email:
            raise ValueError("email must not be empty")

        user = self.session.scalar(select(User).where(User.email == email))
        if user:
            return user

        user = User(email=email)
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_user(self, user_id: str) -> User | None:
        return self.session.get(User, user_id)

    def create_auth_session(self, *, user_id: str, token_hash: str, expires_at: datetime) -> AuthSession:
        auth_session = AuthSession(user_id=user_id, token_hash=token_hash, expires_at=expires_at)
        self.session.add(auth_session)
        self.session.commit()
        self.session.refresh(auth_session)
        return auth_session

    def get_active_session_user_id(self, token_hash: str) -> str | None:
        statement = select(AuthSession.user_id).where(
            AuthSession.token_hash == token_hash,
            AuthSession.revoked.is_(False),
            AuthSession.expires_at > utcnow(),
        )
        return self.session.scalar(statement)

    def revoke_auth_session(self, token_hash: str) -> bool:
        result = self.session.execute(
            update(AuthSession)
            .where(AuthSession.token_hash == token_hash, AuthSession.revoked.is_(False))
            .values(revoked=True)
        )
        self.session.commit()
        return bool(result.rowcount)

    def get_profile(self, user_id: str) -> Profile | None:
        return self.session.get(Profile, user_id)

    def upsert_profile(self, user_id: str, values: dict[str, Any]) -> Profile:
        existing = self.session.get(Profile, user_id)
        if existing:
            for key, value in values.items():
                setattr(existing, key, value)
            obj = existing
        else:
            obj = Profile(id=user_id, **values)
            self.session.add(obj)

        obj.updated_at = utcnow()
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def create_project(
        self,
        *,
        user_id: str,
        title: str,
        description: str | None,
        summary: str | None,
        thumbnail: str | None,
        category: str | None,
        is_video: bool,
        skills: list[str],
        technical_specs: dict[str, Any],
        recruiter_insight: str | None = None,
    ) -> Project:
        project = Project(
            user_id=user_id,
            title=title,
            description=description,
            summary=summary,
            thumbnail=thumbnail,
            category=category,
            is_video=is_video,
            skills=list(skills),
            technical_specs=dict(technical_specs),
            recruiter_insight=recruiter_insight,
        )
        self.session.add(project)
        self.session.commit()
        self.session.refresh(project)
        return project

    def get_project(self, project_id: str) -> Project | None:
        return self.session.get(Project, project_id)

    def list_projects(self, user_id: str, *, public_only: bool = False) -> list[Project]:
        statement = select(Project).where(Project.user_id == user_id)
        if public_only:
            statement = statement.where(Project.is_public.is_(True))
        statement = statement.order_by(Project.created_at.desc())
        return list(self.session.scalars(statement).all())

    def set_project_visibility(self, project_id: str, is_public: bool) -> Project:
        project = self.session.get(Project, project_id)
        if not project:
            raise ValueError(f"project {project_id} not found")

        project.is_public = is_public
        self.session.commit()
        self.session.refresh(project)
        return project
