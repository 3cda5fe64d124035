"""Image payloads passed to and returned from the image uploader."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import BaseModel


@dataclass(frozen=True)
class ImageFile:
    filename: str
    content: bytes
    content_type: Optional[str] = None

    @classmethod
    def from_path(cls, path: str | Path) -> ImageFile:
        p = Path(path)
        content_type, _ = mimetypes.guess_type(p.name)
        return cls(filename=p.name, content=p.read_bytes(), content_type=content_type)


class UploadedImage(BaseModel):
    url: str
    public_id: Optional[str] = None
