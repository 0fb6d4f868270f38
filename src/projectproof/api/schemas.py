from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from projectproof.types import ProfileUpdate, Thought


class SessionCreateRequest(BaseModel):
    email: str = Field(min_length=3)


class SessionResponse(BaseModel):
    token: str
    user_id: str
    expires_at: str


class ProfileResponse(BaseModel):
    id: str
    full_name: str | None = None
    title: str | None = None
    location: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    website: str | None = None
    updated_at: str | None = None


class ProfileUpdateRequest(ProfileUpdate):
    pass


class ProjectResponse(BaseModel):
    id: str
    user_id: str
    created_at: str | None = None
    title: str
    description: str | None = None
    thumbnail: str | None = None
    category: str | None = None
    skills: list[str] = Field(default_factory=list)
    is_video: bool = False
    technical_specs: dict[str, Any] = Field(default_factory=dict)
    methodology: list[str] = Field(default_factory=list)
    summary: str | None = None
    recruiter_insight: str | None = None
    is_public: bool = False


class VisibilityRequest(BaseModel):
    is_public: bool


class UploadedFileResponse(BaseModel):
    id: str
    name: str
    type: str
    size: str
    status: str


class StudioRunResponse(BaseModel):
    run_id: str
    success: bool
    project_id: str = ""
    error: str | None = None
    failed_stage: str | None = None
    thoughts: list[Thought] = Field(default_factory=list)
    files: list[UploadedFileResponse] = Field(default_factory=list)


class CancelResponse(BaseModel):
    run_id: str
    cancelled: bool


class RunReservationResponse(BaseModel):
    run_id: str
