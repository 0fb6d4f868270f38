from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from projectproof.db.models import Project
from projectproof.db.repositories import Repository
from projectproof.types import Portfolio, RadarPoint

PUBLIC_NAME_FALLBACK = "Verified Student"
PREVIEW_FALLBACK = {
    "full_name": "Engineering Student",
    "title": "Student Portfolio",
    "location": "Not set",
    "bio": "Building technical solutions analyzed by Gemini AI.",
}
INSIGHT_PENDING = "Analyzing technical competencies across projects..."
INSIGHT_EMPTY = "Upload projects to generate AI recruiter insights."


def serialize_project(project: Project) -> dict[str, Any]:
    return {
        "id": project.id,
        "user_id": project.user_id,
        "created_at": project.created_at.isoformat() if project.created_at else None,
        "title": project.title,
        "description": project.description,
        "thumbnail": project.thumbnail,
        "category": project.category,
        "skills": list(project.skills or []),
        "is_video": project.is_video,
        "technical_specs": dict(project.technical_specs or {}),
        "methodology": list(project.methodology or []),
        "summary": project.summary,
        "recruiter_insight": project.recruiter_insight,
        "is_public": project.is_public,
    }


def matches_query(project: Project, query: str) -> bool:
    needle = query.strip().lower()
    if not needle:
        return True
    if needle in project.title.lower():
        return True
    if needle in (project.category or "").lower():
        return True
    return any(needle in skill.lower() for skill in project.skills or [])


def search_projects(repo: Repository, user_id: str, query: str = "") -> list[Project]:
    return [project for project in repo.list_projects(user_id) if matches_query(project, query)]


def skill_radar(projects: Iterable[Project], level: int) -> list[RadarPoint]:
    """Every skill named by a visible project, once, at a flat verified level."""
    seen: dict[str, RadarPoint] = {}
    for project in projects:
        for skill in project.skills or []:
            if isinstance(skill, str) and skill not in seen:
                seen[skill] = RadarPoint(skill=skill, level=level)
    return list(seen.values())


def build_portfolio(repo: Repository, user_id: str, *, public_view: bool, skill_level: int) -> Portfolio:
    if repo.get_user(user_id) is None:
        raise LookupError(f"user {user_id} not found")

    profile = repo.get_profile(user_id)
    projects = repo.list_projects(user_id, public_only=public_view)

    if profile is None and not public_view:
        fields = dict(PREVIEW_FALLBACK)
    else:
        fields = {
            "full_name": (profile.full_name if profile else None) or PUBLIC_NAME_FALLBACK,
            "title": profile.title if profile else None,
            "location": profile.location if profile else None,
            "bio": profile.bio if profile else None,
            "avatar_url": profile.avatar_url if profile else None,
            "website": profile.website if profile else None,
        }

    if projects:
        insight = projects[0].recruiter_insight or INSIGHT_PENDING
    else:
        insight = INSIGHT_EMPTY if profile is None else INSIGHT_PENDING

    return Portfolio(
        user_id=user_id,
        projects=[serialize_project(project) for project in projects],
        skills=skill_radar(projects, skill_level),
        insight=insight,
        **fields,
    )
