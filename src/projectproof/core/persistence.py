from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from projectproof.core.auth import AuthProvider
from projectproof.db.repositories import Repository
from projectproof.errors import PersistenceError
from projectproof.types import ProjectAnalysis

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New Project Analysis"
DEFAULT_DESCRIPTION = "AI Analyzed Project"
DEFAULT_CATEGORY = "Engineering"


class ProjectWriter:
    def __init__(self, repo: Repository):
        self.repo = repo

    def write(
        self,
        *,
        analysis: ProjectAnalysis,
        thumbnail_url: str,
        is_video: bool,
        auth: AuthProvider,
    ) -> str:
        # The session may have expired while the model was thinking.
        user_id = auth.current_user_id()

        try:
            project = self.repo.create_project(
                user_id=user_id,
                title=analysis.title or DEFAULT_TITLE,
                description=analysis.description or DEFAULT_DESCRIPTION,
                summary=analysis.summary,
                thumbnail=thumbnail_url,
                category=analysis.category or DEFAULT_CATEGORY,
                is_video=is_video,
                skills=analysis.skills,
                technical_specs=analysis.technical_specs,
                recruiter_insight=analysis.recruiter_insight,
            )
        except SQLAlchemyError as exc:
            self.repo.session.rollback()
            raise PersistenceError(f"project insert rejected: {exc}") from exc

        logger.info("Inserted project id=%s user_id=%s", project.id, user_id)
        return project.id
