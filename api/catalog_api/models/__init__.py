"""Pydantic models."""

from catalog_api.models.contributor import Contributor
from catalog_api.models.error import ErrorDetail
from catalog_api.models.media import ImageFile, UploadedImage
from catalog_api.models.project import (
    Project,
    ProjectCreate,
    ProjectDetail,
    ProjectPage,
    ProjectUpdate,
)
from catalog_api.models.result import ErrorKind, Failure, OperationResult, Success
from catalog_api.models.tag import Tag, TagCreate

__all__ = [
    "Contributor",
    "ErrorDetail",
    "ErrorKind",
    "Failure",
    "ImageFile",
    "OperationResult",
    "Project",
    "ProjectCreate",
    "ProjectDetail",
    "ProjectPage",
    "ProjectUpdate",
    "Success",
    "Tag",
    "TagCreate",
    "UploadedImage",
]
