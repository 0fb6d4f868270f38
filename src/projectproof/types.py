from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr

ThoughtType = Literal["info", "process", "success", "warning"]
MediaKind = Literal["video", "image"]
UploadStatus = Literal["uploading", "analyzing", "complete"]


class Thought(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    type: ThoughtType


class ProjectAnalysis(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    summary: str
    description: str
    skills: list[str]
    technical_specs: dict[str, Union[StrictStr, StrictInt, StrictFloat]]
    category: str
    recruiter_insight: str


ANALYSIS_FIELDS = tuple(ProjectAnalysis.model_fields)


@dataclass(frozen=True, slots=True)
class Reasoning:
    text: str


@dataclass(frozen=True, slots=True)
class Answer:
    text: str


Fragment = Union[Reasoning, Answer]


class PipelineResult(BaseModel):
    success: bool
    project_id: str = ""
    error: str | None = None
    failed_stage: str | None = None


@dataclass(slots=True)
class MediaFile:
    """A raw upload handed to the pipeline, backed by bytes or a local path."""

    name: str
    content_type: str
    data: bytes | None = None
    path: Path | None = None

    @property
    def extension(self) -> str:
        suffix = Path(self.name).suffix.lstrip(".").lower()
        return suffix or "bin"

    @property
    def is_video(self) -> bool:
        return self.content_type.startswith("video/")

    def read_bytes(self) -> bytes:
        if self.data is not None:
            return self.data
        if self.path is None:
            raise ValueError(f"media {self.name!r} has no data or path")
        return self.path.read_bytes()


@dataclass(slots=True)
class UploadedFile:
    file: MediaFile
    size_bytes: int
    id: str = field(default_factory=lambda: secrets.token_hex(5)[:9])
    status: UploadStatus = "uploading"

    @property
    def name(self) -> str:
        return self.file.name

    @property
    def kind(self) -> MediaKind:
        return media_kind(self.file.content_type)

    @property
    def size(self) -> str:
        return human_size(self.size_bytes)

    def advance(self) -> None:
        if self.status == "uploading":
            self.status = "analyzing"
        elif self.status == "analyzing":
            self.status = "complete"

    def describe(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "type": self.kind, "size": self.size, "status": self.status}


def media_kind(content_type: str) -> MediaKind:
    return "video" if content_type.startswith("video/") else "image"


def is_accepted_media(content_type: str) -> bool:
    return content_type.startswith("image/") or content_type.startswith("video/")


def human_size(size_bytes: int) -> str:
    return f"{size_bytes / 1024 / 1024:.2f} MB"


class RadarPoint(BaseModel):
    skill: str
    level: int
    full_mark: int = 100


class ProfileUpdate(BaseModel):
    full_name: str | None = None
    title: str | None = None
    location: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    website: str | None = None


class Portfolio(BaseModel):
    user_id: str
    full_name: str
    title: str | None = None
    location: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    website: str | None = None
    projects: list[dict] = Field(default_factory=list)
    skills: list[RadarPoint] = Field(default_factory=list)
    insight: str = ""
