"""Project record services: create, query, update and delete.

Each service wraps one CatalogStore call and converts store exceptions into
``Failure`` results, so nothing raises past this module.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from catalog_api.adapters.catalog_store import CatalogStore
from catalog_api.models.contributor import Contributor
from catalog_api.models.media import ImageFile
from catalog_api.models.project import Project, ProjectBase, ProjectDetail, ProjectPage, ProjectUpdate
from catalog_api.models.result import ErrorKind, Failure, OperationResult, Success, failure
from catalog_api.services.image_uploader import ImageUploader

log = logging.getLogger(__name__)

THUMBNAIL_FOLDER = "projects"
MAX_PAGE_LIMIT = 100
_STORE_ERRORS = (SQLAlchemyError, ValueError, OSError)


def _not_found() -> Failure:
    return failure(ErrorKind.NOT_FOUND, "Project not found")


class ProjectStore:
    """Creates project records. The store assigns the id."""

    def __init__(self, store: CatalogStore) -> None:
        self._store = store

    def create(self, fields: ProjectBase, thumbnail_url: Optional[str] = None) -> OperationResult[Project]:
        try:
            project = self._store.create_project(fields, thumbnail=thumbnail_url)
        except _STORE_ERRORS as exc:
            log.info("project_create_failed name=%s error=%s", fields.name, exc)
            return failure(ErrorKind.STORE_FAILURE, "Failed to add project")
        return Success(project)


class ProjectQueryService:
    def __init__(self, store: CatalogStore) -> None:
        self._store = store

    def _detail(self, project: Project) -> ProjectDetail:
        return ProjectDetail(
            **project.model_dump(),
            tags=self._store.tags_for_project(project.id),
            contributors=self._store.contributors_for_project(project.id),
        )

    def list_projects(self, page: int = 1, limit: int = 20) -> OperationResult[ProjectPage]:
        page = max(1, int(page))
        limit = max(1, min(int(limit), MAX_PAGE_LIMIT))
        skip = (page - 1) * limit
        try:
            rows = self._store.list_projects(skip=skip, limit=limit)
            items = [self._detail(p) for p in rows]
            total = self._store.count_projects()
        except _STORE_ERRORS as exc:
            log.info("project_list_failed page=%s limit=%s error=%s", page, limit, exc)
            return failure(ErrorKind.STORE_FAILURE, "Failed to fetch projects")
        return Success(ProjectPage(items=items, total=total, page=page, limit=limit))

    def get_project(self, project_id: str) -> OperationResult[ProjectDetail]:
        try:
            project = self._store.get_project(project_id)
            if project is None:
                return _not_found()
            return Success(self._detail(project))
        except _STORE_ERRORS as exc:
            log.info("project_get_failed project_id=%s error=%s", project_id, exc)
            return failure(ErrorKind.STORE_FAILURE, "Failed to fetch project")

    def contributors_for_project(self, project_id: str) -> OperationResult[list[Contributor]]:
        try:
            if self._store.get_project(project_id) is None:
                return _not_found()
            return Success(self._store.contributors_for_project(project_id))
        except _STORE_ERRORS as exc:
            log.info("project_contributors_failed project_id=%s error=%s", project_id, exc)
            return failure(ErrorKind.STORE_FAILURE, "Failed to fetch contributors")


class ProjectUpdateService:
    """Partial updates. A new thumbnail is uploaded before the record changes."""

    def __init__(self, store: CatalogStore, uploader: ImageUploader) -> None:
        self._store = store
        self._uploader = uploader

    def update_project(
        self,
        project_id: str,
        updates: ProjectUpdate,
        image: Optional[ImageFile] = None,
    ) -> OperationResult[Project]:
        try:
            current = self._store.get_project(project_id)
        except _STORE_ERRORS as exc:
            log.info("project_update_lookup_failed project_id=%s error=%s", project_id, exc)
            return failure(ErrorKind.STORE_FAILURE, "Failed to update project")
        if current is None:
            return _not_found()

        changes = updates.model_dump(exclude_unset=True)
        if changes.get("name", "") is None:
            changes.pop("name")

        if image is not None:
            uploaded = self._uploader.upload(image, THUMBNAIL_FOLDER)
            if not uploaded.ok:
                return uploaded
            changes["thumbnail"] = uploaded.data.url

        if not changes:
            return Success(current)

        try:
            project = self._store.update_project(project_id, changes)
        except KeyError:
            return _not_found()
        except _STORE_ERRORS as exc:
            log.info("project_update_failed project_id=%s error=%s", project_id, exc)
            return failure(ErrorKind.STORE_FAILURE, "Failed to update project")
        return Success(project)


class ProjectDeleteService:
    def __init__(self, store: CatalogStore) -> None:
        self._store = store

    def delete_project(self, project_id: str) -> OperationResult[str]:
        try:
            self._store.delete_project(project_id)
        except KeyError:
            return _not_found()
        except _STORE_ERRORS as exc:
            log.info("project_delete_failed project_id=%s error=%s", project_id, exc)
            return failure(ErrorKind.STORE_FAILURE, "Failed to delete project")
        return Success(project_id)
