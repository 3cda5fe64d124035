"""Tests for the GitHub API client.

Covers auth headers, rate limiting, ETag caching, errors and contributor pagination.
HTTP is mocked with respx; no real GitHub calls are made.
"""

import time
from unittest.mock import patch

import pytest
import respx
from httpx import Response

from catalog_api.services.github_client import GitHubAPIError, GitHubClient


@respx.mock
def test_github_client_sends_api_headers_and_token():
    route = respx.get("https://api.github.com/repos/acme/atlas").mock(
        return_value=Response(200, json={"name": "atlas"})
    )

    data = GitHubClient(token="test-token-123").get_json("/repos/acme/atlas")

    assert data["name"] == "atlas"
    request = route.calls[0].request
    assert request.headers["authorization"] == "Bearer test-token-123"
    assert request.headers["accept"] == "application/vnd.github+json"
    assert request.headers["user-agent"] == "project-catalog/1.0"


@respx.mock
def test_github_client_reads_token_from_env(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "  env-token  ")
    route = respx.get("https://api.github.com/repos/acme/atlas").mock(
        return_value=Response(200, json={"name": "atlas"})
    )

    GitHubClient().get_json("/repos/acme/atlas")

    assert route.calls[0].request.headers["authorization"] == "Bearer env-token"


@respx.mock
def test_github_client_etag_caching():
    route = respx.get("https://api.github.com/repos/acme/atlas").mock(
        return_value=Response(200, json={"name": "atlas", "version": 1}, headers={"ETag": '"abc123"'})
    )
    client = GitHubClient()
    assert client.get_json("/repos/acme/atlas")["version"] == 1

    route.mock(return_value=Response(304))
    assert client.get_json("/repos/acme/atlas")["version"] == 1

    assert len(route.calls) == 2
    assert route.calls[1].request.headers["if-none-match"] == '"abc123"'


@respx.mock
def test_github_client_304_with_lost_cache_refetches():
    route = respx.get("https://api.github.com/repos/acme/atlas")
    route.mock(
        side_effect=[
            Response(200, json={"version": 1}, headers={"ETag": '"abc123"'}),
            Response(304),
            Response(200, json={"version": 2}),
        ]
    )
    client = GitHubClient()
    client.get_json("/repos/acme/atlas")
    client._json_cache_by_url.clear()

    assert client.get_json("/repos/acme/atlas")["version"] == 2
    assert len(route.calls) == 3


@respx.mock
def test_github_client_rate_limit_exhausted_sleeps_and_retries():
    route = respx.get("https://api.github.com/repos/acme/atlas")
    route.mock(
        side_effect=[
            Response(
                403,
                json={"message": "API rate limit exceeded"},
                headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": str(int(time.time()) + 2)},
            ),
            Response(200, json={"name": "atlas"}),
        ]
    )

    with patch("time.sleep") as mock_sleep:
        data = GitHubClient().get_json("/repos/acme/atlas")

    assert mock_sleep.called
    assert mock_sleep.call_args[0][0] > 0
    assert data["name"] == "atlas"
    assert len(route.calls) == 2


@respx.mock
def test_github_client_rate_limit_far_from_reset_raises_without_waiting():
    route = respx.get("https://api.github.com/repos/acme/atlas").mock(
        return_value=Response(
            403,
            json={"message": "API rate limit exceeded"},
            headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": str(int(time.time()) + 3600)},
        )
    )

    with patch("time.sleep") as mock_sleep, pytest.raises(GitHubAPIError) as exc_info:
        GitHubClient(max_rate_limit_wait_seconds=5).get_json("/repos/acme/atlas")

    assert exc_info.value.status_code == 429
    assert not mock_sleep.called
    assert len(route.calls) == 1


@respx.mock
def test_github_client_last_request_of_window_returns_without_sleeping():
    respx.get("https://api.github.com/repos/acme/atlas").mock(
        return_value=Response(
            200,
            json={"name": "atlas"},
            headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": str(int(time.time()) + 3600)},
        )
    )

    with patch("time.sleep") as mock_sleep:
        data = GitHubClient().get_json("/repos/acme/atlas")

    assert data["name"] == "atlas"
    assert not mock_sleep.called


@respx.mock
def test_github_client_non_json_body_raises_value_error():
    respx.get("https://api.github.com/repos/acme/atlas/contributors").mock(
        return_value=Response(200, text="<html>proxy error</html>")
    )

    with pytest.raises(ValueError):
        GitHubClient().list_contributors("acme", "atlas")


@respx.mock
def test_github_client_raises_api_error_with_status():
    respx.get("https://api.github.com/repos/acme/missing").mock(
        return_value=Response(404, json={"message": "Not Found"})
    )

    with pytest.raises(GitHubAPIError) as exc_info:
        GitHubClient().get_json("/repos/acme/missing")

    assert exc_info.value.status_code == 404
    assert "GitHub API error 404" in str(exc_info.value)


@respx.mock
def test_github_client_list_contributors_pagination():
    route = respx.get("https://api.github.com/repos/acme/atlas/contributors")
    route.mock(
        side_effect=[
            Response(200, json=[{"login": f"user{i}", "contributions": 100 - i} for i in range(100)]),
            Response(200, json=[{"login": f"late{i}", "contributions": 1} for i in range(20)]),
        ]
    )

    contributors = GitHubClient().list_contributors("acme", "atlas", per_page=100)

    assert len(contributors) == 120
    assert contributors[0]["login"] == "user0"
    assert len(route.calls) == 2
    assert route.calls[1].request.url.params["page"] == "2"


@respx.mock
def test_github_client_list_contributors_respects_max_pages():
    route = respx.get("https://api.github.com/repos/acme/atlas/contributors").mock(
        return_value=Response(200, json=[{"login": f"user{i}"} for i in range(100)])
    )

    contributors = GitHubClient().list_contributors("acme", "atlas", per_page=100, max_pages=3)

    assert len(contributors) == 300
    assert len(route.calls) == 3


@respx.mock
def test_github_client_empty_repository_returns_no_contributors():
    respx.get("https://api.github.com/repos/acme/empty/contributors").mock(return_value=Response(204))

    assert GitHubClient().list_contributors("acme", "empty") == []


@respx.mock
def test_github_client_custom_base_url():
    respx.get("https://github.enterprise.com/api/v3/repos/acme/atlas").mock(
        return_value=Response(200, json={"name": "atlas"})
    )

    client = GitHubClient(base_url="https://github.enterprise.com/api/v3/")

    assert client.get_json("/repos/acme/atlas")["name"] == "atlas"
