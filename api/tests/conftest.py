"""Pytest configuration and fixtures.

Every test gets a fresh in-memory catalog on ``app.state`` so API tests never share
projects, tags or contributors.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# The app module reads these at import time; tests always start in-memory.
for _key in (
    "DATABASE_URL",
    "CATALOG_STORE_PATH",
    "CLOUDINARY_CLOUD_NAME",
    "CLOUDINARY_API_KEY",
    "CLOUDINARY_API_SECRET",
    "GITHUB_TOKEN",
    "GH_TOKEN",
):
    os.environ.pop(_key, None)

GITHUB_ORG = "acme"


@pytest.fixture(autouse=True)
def _reset_app_state(tmp_path: Path) -> None:
    from catalog_api.adapters.catalog_store import InMemoryCatalogStore
    from catalog_api.config import CatalogSettings
    from catalog_api.main import app
    from catalog_api.services.github_client import GitHubClient
    from catalog_api.services.image_uploader import LocalImageUploader

    app.state.settings = CatalogSettings(github_org=GITHUB_ORG)
    app.state.catalog_store = InMemoryCatalogStore()
    app.state.image_uploader = LocalImageUploader(root=tmp_path / "uploads", base_url="/uploads")
    app.state.github_client = GitHubClient(token="test-token")
