"""Project catalog models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from catalog_api.models.contributor import Contributor
from catalog_api.models.tag import Tag


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ProjectBase(BaseModel):
    name: str = Field(min_length=1)
    github_link: Optional[str] = None
    demo_link: Optional[str] = None
    description: str = ""
    tech_stacks: list[str] = Field(default_factory=list)


class ProjectCreate(ProjectBase):
    """Validated input for the create-project workflow."""

    tag_ids: list[str] = Field(default_factory=list)


class ProjectUpdate(BaseModel):
    """Partial update. Only fields that were explicitly set are applied."""

    name: Optional[str] = Field(default=None, min_length=1)
    github_link: Optional[str] = None
    demo_link: Optional[str] = None
    description: Optional[str] = None
    tech_stacks: Optional[list[str]] = None


class Project(ProjectBase):
    id: str
    thumbnail: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)


class ProjectDetail(Project):
    """Project with its linked tags and contributors, as listed to admins."""

    tags: list[Tag] = Field(default_factory=list)
    contributors: list[Contributor] = Field(default_factory=list)


class ProjectPage(BaseModel):
    """Pagination envelope for GET /api/projects."""

    items: list[ProjectDetail]
    total: int = Field(ge=0)
    page: int = Field(ge=1)
    limit: int = Field(ge=1)
