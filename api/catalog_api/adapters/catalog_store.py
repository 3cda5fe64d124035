"""CatalogStore abstraction + in-memory backend.

Nodes: projects, tags, contributors.
Edges: project_tags (unique per pair), project_contributors (unique per pair).

Store methods raise ``KeyError`` for unknown ids and ``ValueError`` for constraint
violations; the service layer turns both into ``Failure`` results. A mutation whose
JSON save fails is undone before the error propagates.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Protocol
from uuid import uuid4

from catalog_api.models.contributor import Contributor
from catalog_api.models.project import Project, ProjectBase
from catalog_api.models.tag import Tag

log = logging.getLogger(__name__)

_PROJECT_FIELDS = ("name", "github_link", "demo_link", "description", "tech_stacks", "thumbnail")


def new_id() -> str:
    return uuid4().hex


class CatalogStore(Protocol):
    """Protocol for catalog storage. Implementations: InMemoryCatalogStore, SqlCatalogStore."""

    def create_project(self, fields: ProjectBase, thumbnail: Optional[str] = None) -> Project:
        ...

    def get_project(self, project_id: str) -> Optional[Project]:
        ...

    def list_projects(self, skip: int = 0, limit: int = 20) -> list[Project]:
        ...

    def count_projects(self) -> int:
        ...

    def update_project(self, project_id: str, changes: dict[str, Any]) -> Project:
        ...

    def delete_project(self, project_id: str) -> None:
        ...

    # --- tags ---

    def create_tag(self, name: str) -> Tag:
        ...

    def list_tags(self) -> list[Tag]:
        ...

    def link_tags(self, project_id: str, tag_ids: Iterable[str]) -> int:
        """Link all tags or none. Returns the number of distinct pairs requested."""
        ...

    def tags_for_project(self, project_id: str) -> list[Tag]:
        ...

    # --- contributors ---

    def upsert_contributor(self, contributor: Contributor) -> Contributor:
        ...

    def link_contributor(self, contributor_id: str, project_id: str) -> None:
        ...

    def contributors_for_project(self, project_id: str) -> list[Contributor]:
        ...


class InMemoryCatalogStore:
    """In-memory CatalogStore. Optional JSON persistence for restart."""

    def __init__(self, persist_path: Optional[str] = None) -> None:
        self._lock = threading.RLock()
        self._projects: dict[str, Project] = {}
        self._tags: dict[str, Tag] = {}
        self._contributors: dict[str, Contributor] = {}
        self._project_tags: set[tuple[str, str]] = set()  # (project_id, tag_id)
        self._project_contributors: set[tuple[str, str]] = set()  # (project_id, contributor_id)
        self._persist_path = persist_path

        if persist_path and os.path.isfile(persist_path):
            self._load()

    def _load(self) -> None:
        if not self._persist_path:
            return
        try:
            with open(self._persist_path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as exc:
            log.warning("catalog_store_load_failed path=%s error=%s", self._persist_path, exc)
            return
        for p in data.get("projects", []):
            proj = Project(**p)
            self._projects[proj.id] = proj
        for t in data.get("tags", []):
            tag = Tag(**t)
            self._tags[tag.id] = tag
        for c in data.get("contributors", []):
            contrib = Contributor(**c)
            self._contributors[contrib.id] = contrib
        for pair in data.get("project_tags", []):
            if isinstance(pair, list) and len(pair) == 2:
                self._project_tags.add((pair[0], pair[1]))
        for pair in data.get("project_contributors", []):
            if isinstance(pair, list) and len(pair) == 2:
                self._project_contributors.add((pair[0], pair[1]))

    def save(self) -> None:
        """Persist to JSON if path set. Writes a sibling temp file, then swaps it in."""
        if not self._persist_path:
            return
        with self._lock:
            data = {
                "projects": [p.model_dump(mode="json") for p in self._projects.values()],
                "tags": [t.model_dump(mode="json") for t in self._tags.values()],
                "contributors": [c.model_dump(mode="json") for c in self._contributors.values()],
                "project_tags": [list(pair) for pair in sorted(self._project_tags)],
                "project_contributors": [list(pair) for pair in sorted(self._project_contributors)],
            }
            os.makedirs(os.path.dirname(self._persist_path) or ".", exist_ok=True)
            tmp_path = f"{self._persist_path}.tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=0)
            os.replace(tmp_path, self._persist_path)

    def _snapshot(self) -> tuple:
        return (
            dict(self._projects),
            dict(self._tags),
            dict(self._contributors),
            set(self._project_tags),
            set(self._project_contributors),
        )

    @contextmanager
    def _mutation(self):
        """Apply a change under the lock and persist it; restore the previous state if saving fails."""
        with self._lock:
            before = self._snapshot() if self._persist_path else None
            try:
                yield
                self.save()
            except OSError as exc:
                if before is not None:
                    (
                        self._projects,
                        self._tags,
                        self._contributors,
                        self._project_tags,
                        self._project_contributors,
                    ) = before
                    log.warning("catalog_store_save_failed path=%s error=%s", self._persist_path, exc)
                raise

    # --- projects ---

    def create_project(self, fields: ProjectBase, thumbnail: Optional[str] = None) -> Project:
        payload = fields.model_dump(include=set(ProjectBase.model_fields))
        project = Project(id=new_id(), thumbnail=thumbnail, **payload)
        with self._mutation():
            self._projects[project.id] = project
        return project

    def get_project(self, project_id: str) -> Optional[Project]:
        return self._projects.get(project_id)

    def list_projects(self, skip: int = 0, limit: int = 20) -> list[Project]:
        with self._lock:
            rows = sorted(self._projects.values(), key=lambda p: (p.created_at, p.id), reverse=True)
        return rows[max(0, skip) : max(0, skip) + max(0, limit)]

    def count_projects(self) -> int:
        return len(self._projects)

    def update_project(self, project_id: str, changes: dict[str, Any]) -> Project:
        with self._mutation():
            current = self._projects.get(project_id)
            if current is None:
                raise KeyError(project_id)
            patch = {k: v for k, v in changes.items() if k in _PROJECT_FIELDS}
            patch["updated_at"] = datetime.now(timezone.utc)
            updated = current.model_copy(update=patch)
            self._projects[project_id] = updated
        return updated

    def delete_project(self, project_id: str) -> None:
        with self._mutation():
            if project_id not in self._projects:
                raise KeyError(project_id)
            del self._projects[project_id]
            self._project_tags = {pair for pair in self._project_tags if pair[0] != project_id}
            self._project_contributors = {
                pair for pair in self._project_contributors if pair[0] != project_id
            }

    # --- tags ---

    def create_tag(self, name: str) -> Tag:
        label = name.strip()
        with self._mutation():
            if any(t.name.lower() == label.lower() for t in self._tags.values()):
                raise ValueError(f"Tag '{label}' already exists")
            tag = Tag(id=new_id(), name=label)
            self._tags[tag.id] = tag
        return tag

    def get_tag(self, tag_id: str) -> Optional[Tag]:
        return self._tags.get(tag_id)

    def list_tags(self) -> list[Tag]:
        return sorted(self._tags.values(), key=lambda t: t.name.lower())

    def link_tags(self, project_id: str, tag_ids: Iterable[str]) -> int:
        wanted = set(tag_ids)
        with self._mutation():
            if project_id not in self._projects:
                raise KeyError(project_id)
            missing = sorted(t for t in wanted if t not in self._tags)
            if missing:
                raise KeyError(", ".join(missing))
            for tag_id in wanted:
                self._project_tags.add((project_id, tag_id))
        return len(wanted)

    def tags_for_project(self, project_id: str) -> list[Tag]:
        with self._lock:
            out = [self._tags[t] for p, t in self._project_tags if p == project_id and t in self._tags]
        out.sort(key=lambda t: t.name.lower())
        return out

    # --- contributors ---

    def upsert_contributor(self, contributor: Contributor) -> Contributor:
        with self._mutation():
            existing = self._contributors.get(contributor.id)
            if existing is not None:
                contributor = contributor.model_copy(update={"created_at": existing.created_at})
            self._contributors[contributor.id] = contributor
        return contributor

    def link_contributor(self, contributor_id: str, project_id: str) -> None:
        with self._mutation():
            if project_id not in self._projects:
                raise KeyError(project_id)
            if contributor_id not in self._contributors:
                raise KeyError(contributor_id)
            self._project_contributors.add((project_id, contributor_id))

    def contributors_for_project(self, project_id: str) -> list[Contributor]:
        with self._lock:
            out = [
                self._contributors[c]
                for p, c in self._project_contributors
                if p == project_id and c in self._contributors
            ]
        out.sort(key=lambda x: x.contributions, reverse=True)
        return out
