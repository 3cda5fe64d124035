"""GitHub REST client used to discover project contributors.

Requests carry optional token auth (GITHUB_TOKEN / GH_TOKEN) and a bounded timeout,
and use ETag conditional requests backed by an in-memory response cache.

Calls run inside API requests, so an exhausted rate limit is waited out only when
the reset is close (``max_rate_limit_wait_seconds``). A longer wait surfaces as
``GitHubAPIError`` with status 429 instead of blocking the caller.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Optional

import httpx

log = logging.getLogger(__name__)

RATE_LIMITED = 429


class GitHubAPIError(RuntimeError):
    """Non-2xx/304 response from the GitHub API, or a rate limit too far from reset."""

    def __init__(self, status_code: int, url: str, body: str = "") -> None:
        super().__init__(f"GitHub API error {status_code} for {url}: {body[:200]}")
        self.status_code = status_code
        self.url = url


def _rate_limit_wait(r: httpx.Response) -> Optional[int]:
    """Seconds until the rate-limit window resets, when the budget is spent."""
    try:
        remaining = int(r.headers.get("X-RateLimit-Remaining", ""))
        reset_at = int(r.headers.get("X-RateLimit-Reset", ""))
    except ValueError:
        return None
    if remaining != 0:
        return None
    return max(0, reset_at - int(time.time())) + 1


class GitHubClient:
    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = "https://api.github.com",
        user_agent: str = "project-catalog/1.0",
        timeout: float = 20.0,
        max_rate_limit_wait_seconds: float = 5.0,
    ) -> None:
        env_token = (os.getenv("GITHUB_TOKEN") or os.getenv("GH_TOKEN") or "").strip()
        self._token = token or env_token or None
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_wait = max(0.0, max_rate_limit_wait_seconds)
        self._headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": user_agent,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            self._headers["Authorization"] = f"Bearer {self._token}"

        # Shared by every request this client makes.
        self._etag_by_url: dict[str, str] = {}
        self._json_cache_by_url: dict[str, Any] = {}

    def _send(self, url: str, headers: dict[str, str]) -> httpx.Response:
        with httpx.Client(timeout=self._timeout, headers=headers) as client:
            return client.get(url)

    def _get(self, url: str, extra_headers: Optional[dict[str, str]] = None) -> httpx.Response:
        headers = {**self._headers, **(extra_headers or {})}
        r = self._send(url, headers)
        if r.status_code not in (403, RATE_LIMITED):
            return r

        wait = _rate_limit_wait(r)
        if wait is None:
            return r
        if wait > self._max_wait:
            log.warning("github_rate_limit_exhausted url=%s reset_in_seconds=%s", url, wait)
            raise GitHubAPIError(RATE_LIMITED, url, f"rate limit exhausted, resets in {wait}s")
        log.info("github_rate_limit_sleep seconds=%s", wait)
        time.sleep(wait)
        return self._send(url, headers)

    def get_json(self, path: str) -> Any:
        """GET JSON for a path or full URL. Raises ValueError when a 2xx body is not JSON."""
        url = path if path.startswith("http") else f"{self._base_url}{path}"

        etag = self._etag_by_url.get(url)
        r = self._get(url, {"If-None-Match": etag} if etag else None)

        if r.status_code == 304:
            if url in self._json_cache_by_url:
                return self._json_cache_by_url[url]
            r = self._get(url)

        if r.status_code >= 400:
            log.debug("github_api_error status=%s url=%s", r.status_code, url)
            raise GitHubAPIError(r.status_code, url, r.text)

        # Empty repositories answer /contributors with 204 and no body.
        data = r.json() if r.content else []
        new_etag = r.headers.get("ETag")
        if new_etag:
            self._etag_by_url[url] = new_etag
        self._json_cache_by_url[url] = data
        return data

    def list_contributors(self, owner: str, repo: str, per_page: int = 100, max_pages: int = 5) -> list[dict]:
        """List a repository's contributors, most active first, up to ``max_pages`` pages."""
        out: list[dict] = []
        for page in range(1, max_pages + 1):
            data = self.get_json(f"/repos/{owner}/{repo}/contributors?per_page={per_page}&page={page}&anon=false")
            if not isinstance(data, list):
                break
            out.extend(data)
            if len(data) < per_page:
                break
        return out
