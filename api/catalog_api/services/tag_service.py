"""Tag catalogue and project-tag association."""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError

from catalog_api.adapters.catalog_store import CatalogStore
from catalog_api.models.result import ErrorKind, OperationResult, Success, failure
from catalog_api.models.tag import Tag, TagCreate

log = logging.getLogger(__name__)


class TagAssociator:
    """Links tags to a project. All requested tags are linked, or none are."""

    def __init__(self, store: CatalogStore) -> None:
        self._store = store

    def associate(self, project_id: str, tag_ids: Iterable[str]) -> OperationResult[int]:
        wanted = {str(t).strip() for t in tag_ids if str(t).strip()}
        if not wanted:
            return failure(ErrorKind.VALIDATION_FAILURE, "At least one tag id is required")
        try:
            count = self._store.link_tags(project_id, wanted)
        except KeyError as exc:
            log.info("tag_association_unknown_ids project_id=%s missing=%s", project_id, exc)
            return failure(ErrorKind.ASSOCIATION_FAILURE, f"Unknown project or tag id: {exc.args[0]}")
        except (SQLAlchemyError, ValueError, OSError) as exc:
            log.info("tag_association_failed project_id=%s error=%s", project_id, exc)
            return failure(ErrorKind.ASSOCIATION_FAILURE, "Failed to associate tags")
        return Success(count)


class TagService:
    def __init__(self, store: CatalogStore) -> None:
        self._store = store

    def create_tag(self, payload: TagCreate) -> OperationResult[Tag]:
        try:
            return Success(self._store.create_tag(payload.name))
        except ValueError as exc:
            return failure(ErrorKind.VALIDATION_FAILURE, str(exc))
        except (SQLAlchemyError, OSError) as exc:
            log.info("tag_create_failed name=%s error=%s", payload.name, exc)
            return failure(ErrorKind.STORE_FAILURE, "Failed to add tag")

    def list_tags(self) -> OperationResult[list[Tag]]:
        try:
            return Success(self._store.list_tags())
        except SQLAlchemyError as exc:
            log.info("tag_list_failed error=%s", exc)
            return failure(ErrorKind.STORE_FAILURE, "Failed to fetch tags")
