"""Contributor import from a project's GitHub repository."""

from __future__ import annotations

import logging

import httpx
from sqlalchemy.exc import SQLAlchemyError

from catalog_api.adapters.catalog_store import CatalogStore
from catalog_api.models.contributor import Contributor
from catalog_api.models.result import ErrorKind, OperationResult, Success, failure
from catalog_api.services.github_client import GitHubAPIError, GitHubClient

log = logging.getLogger(__name__)


def _is_bot(payload: dict) -> bool:
    login = str(payload.get("login") or "")
    return payload.get("type") == "Bot" or login.lower().endswith("[bot]")


class ContributorImporter:
    """Fetches ``<owner>/<repo_name>`` contributors and links them to a project.

    The owner is fixed per deployment (GITHUB_ORG); callers only know the short name.
    """

    def __init__(self, store: CatalogStore, github: GitHubClient, owner: str) -> None:
        self._store = store
        self._github = github
        self._owner = owner.strip()

    def import_from_repository(self, repo_name: str, project_id: str) -> OperationResult[int]:
        if not self._owner:
            return failure(ErrorKind.IMPORT_FAILURE, "GITHUB_ORG is not configured")
        full_name = f"{self._owner}/{repo_name}"
        try:
            rows = self._github.list_contributors(self._owner, repo_name)
        except GitHubAPIError as exc:
            if exc.status_code == 404:
                return failure(ErrorKind.NOT_FOUND, f"Repository {full_name} not found")
            return failure(ErrorKind.IMPORT_FAILURE, f"GitHub API error {exc.status_code} for {full_name}")
        except httpx.HTTPError as exc:
            return failure(ErrorKind.IMPORT_FAILURE, f"GitHub request failed for {full_name}: {exc}")
        except ValueError as exc:
            log.debug("contributor_list_unreadable repo=%s error=%s", full_name, exc)
            return failure(ErrorKind.IMPORT_FAILURE, f"Unreadable contributor list for {full_name}")

        linked = 0
        failed: list[str] = []
        for payload in rows:
            if not isinstance(payload, dict) or not payload.get("login") or _is_bot(payload):
                continue
            login = str(payload["login"])
            try:
                contributor = Contributor.from_github(payload)
                stored = self._store.upsert_contributor(contributor)
                self._store.link_contributor(stored.id, project_id)
            except (KeyError, TypeError, ValueError, SQLAlchemyError, OSError) as exc:
                log.debug("contributor_link_failed login=%s project_id=%s error=%s", login, project_id, exc)
                failed.append(login)
                continue
            linked += 1

        if failed:
            return failure(
                ErrorKind.IMPORT_FAILURE,
                f"{len(failed)} contributor(s) failed to process: {', '.join(failed[:10])}",
            )
        return Success(linked)
