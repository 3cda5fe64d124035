"""Environment-driven settings for the catalog API."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional


def _env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def _env_float(name: str, default: float, minimum: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return max(minimum, float(raw))
    except ValueError:
        return default


@dataclass(frozen=True)
class CatalogSettings:
    database_url: Optional[str] = None
    store_path: Optional[str] = None
    github_org: str = ""
    github_timeout_seconds: float = 20.0
    github_rate_limit_wait_seconds: float = 5.0
    allowed_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> CatalogSettings:
        origins = _env_str("ALLOWED_ORIGINS", "http://localhost:3000")
        return cls(
            database_url=_env_str("DATABASE_URL") or None,
            store_path=_env_str("CATALOG_STORE_PATH") or None,
            github_org=_env_str("GITHUB_ORG"),
            github_timeout_seconds=_env_float("GITHUB_TIMEOUT_SECONDS", 20.0, minimum=1.0),
            github_rate_limit_wait_seconds=_env_float("GITHUB_RATE_LIMIT_WAIT_SECONDS", 5.0, minimum=0.0),
            allowed_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=_env_str("API_LOG_LEVEL", "INFO").upper(),
        )
