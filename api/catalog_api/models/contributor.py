"""Contributor model.

Contributors are discovered from a project's GitHub repository; callers never
create them directly.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Contributor(BaseModel):
    id: str  # format: "github:login"
    source: str = "github"
    login: str
    avatar_url: Optional[str] = None
    profile_url: Optional[str] = None
    contributions: int = 0
    created_at: datetime = Field(default_factory=_now)

    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """SQLite hands back naive datetimes; they were written as UTC."""
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)

    @classmethod
    def from_github(cls, payload: dict) -> "Contributor":
        login = str(payload.get("login") or "").strip()
        return cls(
            id=f"github:{login.lower()}",
            login=login,
            avatar_url=payload.get("avatar_url"),
            profile_url=payload.get("html_url"),
            contributions=int(payload.get("contributions") or 0),
        )
