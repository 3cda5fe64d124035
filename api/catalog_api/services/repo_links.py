"""Repository link parsing.

``repo_short_name`` is total: any input that does not look like a repository link
yields ``None`` instead of raising.
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import unquote, urlsplit

_SCP_RE = re.compile(r"^[\w.-]+@([\w.-]+):(?P<path>.+)$")
_REPO_NAME_RE = re.compile(r"^[A-Za-z0-9._-]+$")


def _path_segments(link: str) -> list[str]:
    scp = _SCP_RE.match(link)
    if scp:
        path = scp.group("path")
    else:
        try:
            parts = urlsplit(link)
        except ValueError:
            return []
        if parts.scheme.lower() not in {"http", "https", "git", "ssh"} or not parts.netloc:
            return []
        path = parts.path
    return [unquote(s) for s in path.split("/") if s]


def repo_short_name(link: Optional[str]) -> Optional[str]:
    """Final path segment of a repository link, without a trailing ``.git``.

    https://github.com/org/repo      -> "repo"
    https://github.com/org/repo.git  -> "repo"
    git@github.com:org/repo.git      -> "repo"
    "", None, "not a url"            -> None
    """
    if not isinstance(link, str):
        return None
    raw = link.strip()
    if raw.startswith("git+"):
        raw = raw[len("git+") :]
    if not raw:
        return None

    segments = _path_segments(raw)
    if len(segments) < 2:
        return None
    name = segments[-1]
    if name.lower().endswith(".git"):
        name = name[: -len(".git")]
    if name in {"", ".", ".."} or not _REPO_NAME_RE.match(name):
        return None
    return name
