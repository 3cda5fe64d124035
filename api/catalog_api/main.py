from __future__ import annotations

import logging
import os
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from catalog_api.adapters.catalog_store import InMemoryCatalogStore
from catalog_api.adapters.sql_store import SqlCatalogStore
from catalog_api.config import CatalogSettings
from catalog_api.routers import health, projects, tags
from catalog_api.services.github_client import GitHubClient
from catalog_api.services.image_uploader import uploader_from_env

settings = CatalogSettings.from_env()

app = FastAPI(title="Project Catalog API", version="1.0.0")
logger = logging.getLogger("catalog.api")
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    logger.addHandler(handler)
logger.propagate = False
logger.setLevel(getattr(logging, settings.log_level, logging.INFO))
# Service modules (catalog_api.*) propagate to the root logger the server configures.
logging.getLogger("catalog_api").setLevel(logger.level)


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name, "1" if default else "").strip().lower()
    return raw in {"1", "true", "yes", "on"}


def _slow_request_ms_threshold() -> float:
    raw = os.getenv("API_SLOW_REQUEST_MS", "1500").strip()
    try:
        return max(25.0, float(raw))
    except ValueError:
        return 1500.0


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize catalog store based on environment
if settings.database_url:
    # Production: PostgreSQL (any SQLAlchemy URL works)
    app.state.catalog_store = SqlCatalogStore(settings.database_url)
else:
    # Development/Testing: in-memory store with optional JSON persistence
    app.state.catalog_store = InMemoryCatalogStore(persist_path=settings.store_path)

app.state.settings = settings
app.state.image_uploader = uploader_from_env()
app.state.github_client = GitHubClient(
    timeout=settings.github_timeout_seconds,
    max_rate_limit_wait_seconds=settings.github_rate_limit_wait_seconds,
)


@app.get("/", include_in_schema=False)
async def root():
    """Redirect to API documentation."""
    return RedirectResponse(url="/docs")


app.include_router(projects.router, prefix="/api", tags=["projects"])
app.include_router(tags.router, prefix="/api", tags=["tags"])
app.include_router(health.router, prefix="/api", tags=["health"])


@app.middleware("http")
async def log_slow_requests(request: Request, call_next):
    start = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        if elapsed_ms >= _slow_request_ms_threshold() or status_code >= 500 or _env_flag("API_LOG_ALL_REQUESTS"):
            logger.warning(
                "slow_api_request method=%s path=%s status=%s elapsed_ms=%.2f",
                request.method,
                request.url.path,
                status_code,
                elapsed_ms,
            )
