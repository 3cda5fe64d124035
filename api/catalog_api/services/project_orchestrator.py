"""Create-project workflow.

Steps run strictly in order, each needing the id or value produced before it:

1. derive the repository short name from ``github_link`` (never fails)
2. upload the thumbnail, then create the record       -- fatal
3. link tags, when any were given                     -- fatal, no rollback of step 2
4. import contributors, when a short name was derived -- best effort, logged only

The orchestrator keeps no state between calls; collaborators are injected.
"""

from __future__ import annotations

import logging
from typing import Optional

from catalog_api.models.media import ImageFile
from catalog_api.models.project import Project, ProjectCreate
from catalog_api.models.result import ErrorKind, OperationResult, Success, failure
from catalog_api.services.contributor_service import ContributorImporter
from catalog_api.services.image_uploader import ImageUploader
from catalog_api.services.project_service import THUMBNAIL_FOLDER, ProjectStore
from catalog_api.services.repo_links import repo_short_name
from catalog_api.services.tag_service import TagAssociator

log = logging.getLogger(__name__)


class ProjectCreationOrchestrator:
    def __init__(
        self,
        projects: ProjectStore,
        tags: TagAssociator,
        contributors: ContributorImporter,
        uploader: ImageUploader,
    ) -> None:
        self._projects = projects
        self._tags = tags
        self._contributors = contributors
        self._uploader = uploader

    def create_project(self, fields: ProjectCreate, image: Optional[ImageFile] = None) -> OperationResult[Project]:
        repo_name = repo_short_name(fields.github_link)

        thumbnail_url: Optional[str] = None
        if image is not None:
            uploaded = self._uploader.upload(image, THUMBNAIL_FOLDER)
            if not uploaded.ok:
                log.info("project_create_aborted step=upload name=%s error=%s", fields.name, uploaded.message)
                return failure(ErrorKind.STORE_FAILURE, uploaded.message)
            thumbnail_url = uploaded.data.url

        created = self._projects.create(fields, thumbnail_url)
        if not created.ok:
            log.info("project_create_aborted step=store name=%s error=%s", fields.name, created.message)
            return failure(ErrorKind.STORE_FAILURE, created.message)
        project = created.data

        if fields.tag_ids:
            linked = self._tags.associate(project.id, set(fields.tag_ids))
            if not linked.ok:
                # The project row stays; the caller is told the operation failed.
                log.warning(
                    "project_tag_association_failed project_id=%s kind=%s error=%s",
                    project.id,
                    linked.kind.value,
                    linked.message,
                )
                return failure(ErrorKind.ASSOCIATION_FAILURE, "Failed to associate tags")

        if repo_name:
            imported = self._contributors.import_from_repository(repo_name, project.id)
            if imported.ok:
                log.info("contributor_import_done project_id=%s repo=%s count=%s", project.id, repo_name, imported.data)
            else:
                log.warning(
                    "contributor_import_failed project_id=%s repo=%s kind=%s error=%s",
                    project.id,
                    repo_name,
                    imported.kind.value,
                    imported.message,
                )

        return Success(project)
