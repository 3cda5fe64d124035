from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TagCreate(BaseModel):
    name: str = Field(min_length=1, max_length=64)


class Tag(BaseModel):
    id: str
    name: str

    model_config = ConfigDict(from_attributes=True)
