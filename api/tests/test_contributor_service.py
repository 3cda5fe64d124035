"""Tests for importing contributors from a project's GitHub repository."""

import time
from unittest.mock import patch

import httpx
import pytest
import respx
from httpx import Response

from catalog_api.adapters.catalog_store import InMemoryCatalogStore
from catalog_api.models.project import ProjectBase
from catalog_api.models.result import ErrorKind
from catalog_api.services.contributor_service import ContributorImporter
from catalog_api.services.github_client import GitHubClient

CONTRIBUTORS_URL = "https://api.github.com/repos/acme/atlas/contributors"


@pytest.fixture
def store():
    return InMemoryCatalogStore()


@pytest.fixture
def project(store):
    return store.create_project(ProjectBase(name="Atlas", github_link="https://github.com/acme/atlas"))


def _importer(store, owner="acme"):
    return ContributorImporter(store, GitHubClient(token="t"), owner)


@respx.mock
def test_import_links_human_contributors(store, project):
    respx.get(CONTRIBUTORS_URL).mock(
        return_value=Response(
            200,
            json=[
                {"login": "alice", "contributions": 12, "html_url": "https://github.com/alice", "type": "User"},
                {"login": "dependabot[bot]", "contributions": 40, "type": "Bot"},
                {"login": "Bob", "contributions": 3, "avatar_url": "https://avatars/bob", "type": "User"},
                {"login": "", "contributions": 1},
            ],
        )
    )

    result = _importer(store).import_from_repository("atlas", project.id)

    assert result.ok
    assert result.data == 2
    linked = store.contributors_for_project(project.id)
    assert [c.login for c in linked] == ["alice", "Bob"]
    assert linked[0].id == "github:alice"
    assert linked[0].profile_url == "https://github.com/alice"
    assert linked[1].avatar_url == "https://avatars/bob"


@respx.mock
def test_reimport_does_not_duplicate_links(store, project):
    respx.get(CONTRIBUTORS_URL).mock(return_value=Response(200, json=[{"login": "alice", "contributions": 1}]))
    importer = _importer(store)

    importer.import_from_repository("atlas", project.id)
    importer.import_from_repository("atlas", project.id)

    assert len(store.contributors_for_project(project.id)) == 1


@respx.mock
def test_unknown_repository_is_not_found(store, project):
    respx.get(CONTRIBUTORS_URL).mock(return_value=Response(404, json={"message": "Not Found"}))

    result = _importer(store).import_from_repository("atlas", project.id)

    assert not result.ok
    assert result.kind == ErrorKind.NOT_FOUND
    assert "acme/atlas" in result.message


@respx.mock
def test_server_error_is_import_failure(store, project):
    respx.get(CONTRIBUTORS_URL).mock(return_value=Response(502, text="bad gateway"))

    result = _importer(store).import_from_repository("atlas", project.id)

    assert not result.ok
    assert result.kind == ErrorKind.IMPORT_FAILURE


@respx.mock
def test_transport_error_is_import_failure(store, project):
    respx.get(CONTRIBUTORS_URL).mock(side_effect=httpx.ConnectTimeout("timed out"))

    result = _importer(store).import_from_repository("atlas", project.id)

    assert not result.ok
    assert result.kind == ErrorKind.IMPORT_FAILURE


@respx.mock
def test_unknown_project_reports_failed_contributors(store):
    respx.get(CONTRIBUTORS_URL).mock(return_value=Response(200, json=[{"login": "alice", "contributions": 1}]))

    result = _importer(store).import_from_repository("atlas", "missing-project")

    assert not result.ok
    assert result.kind == ErrorKind.IMPORT_FAILURE
    assert "alice" in result.message


def test_missing_owner_fails_without_calling_github(store, project):
    with respx.mock(assert_all_called=False) as mock:
        route = mock.get(CONTRIBUTORS_URL)
        result = _importer(store, owner="  ").import_from_repository("atlas", project.id)

    assert not result.ok
    assert result.kind == ErrorKind.IMPORT_FAILURE
    assert not route.called


@respx.mock
def test_non_json_contributor_list_is_import_failure(store, project):
    respx.get(CONTRIBUTORS_URL).mock(return_value=Response(200, text="<html>proxy error</html>"))

    result = _importer(store).import_from_repository("atlas", project.id)

    assert not result.ok
    assert result.kind == ErrorKind.IMPORT_FAILURE
    assert store.contributors_for_project(project.id) == []


@respx.mock
def test_malformed_contributor_entry_is_reported_others_still_linked(store, project):
    respx.get(CONTRIBUTORS_URL).mock(
        return_value=Response(
            200,
            json=[
                {"login": "alice", "contributions": 5},
                {"login": "mallory", "contributions": "abc"},
            ],
        )
    )

    result = _importer(store).import_from_repository("atlas", project.id)

    assert result.kind == ErrorKind.IMPORT_FAILURE
    assert "mallory" in result.message
    assert [c.login for c in store.contributors_for_project(project.id)] == ["alice"]


@respx.mock
def test_rate_limit_far_from_reset_is_import_failure(store, project):
    respx.get(CONTRIBUTORS_URL).mock(
        return_value=Response(
            403,
            json={"message": "API rate limit exceeded"},
            headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": str(int(time.time()) + 3600)},
        )
    )

    with patch("time.sleep") as mock_sleep:
        result = _importer(store).import_from_repository("atlas", project.id)

    assert result.kind == ErrorKind.IMPORT_FAILURE
    assert "429" in result.message
    assert not mock_sleep.called
