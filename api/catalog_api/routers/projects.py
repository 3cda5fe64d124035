"""Project catalog routes.

Every handler maps an OperationResult onto HTTP: NOT_FOUND -> 404, any other
failure -> 400 with the ``{"detail": "..."}`` body.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, Response, UploadFile

from catalog_api.adapters.catalog_store import CatalogStore
from catalog_api.models.contributor import Contributor
from catalog_api.models.error import ErrorDetail
from catalog_api.models.media import ImageFile, UploadedImage
from catalog_api.models.project import Project, ProjectCreate, ProjectDetail, ProjectPage, ProjectUpdate
from catalog_api.models.result import ErrorKind, Failure, OperationResult
from catalog_api.services.contributor_service import ContributorImporter
from catalog_api.services.image_uploader import ImageUploader
from catalog_api.services.project_orchestrator import ProjectCreationOrchestrator
from catalog_api.services.project_service import (
    MAX_PAGE_LIMIT,
    THUMBNAIL_FOLDER,
    ProjectDeleteService,
    ProjectQueryService,
    ProjectStore,
    ProjectUpdateService,
)
from catalog_api.services.tag_service import TagAssociator

router = APIRouter()

_ERROR_RESPONSES = {400: {"model": ErrorDetail}, 404: {"model": ErrorDetail}}


def get_store(request: Request) -> CatalogStore:
    return request.app.state.catalog_store


def get_uploader(request: Request) -> ImageUploader:
    return request.app.state.image_uploader


def get_orchestrator(request: Request) -> ProjectCreationOrchestrator:
    state = request.app.state
    store = state.catalog_store
    return ProjectCreationOrchestrator(
        projects=ProjectStore(store),
        tags=TagAssociator(store),
        contributors=ContributorImporter(store, state.github_client, state.settings.github_org),
        uploader=state.image_uploader,
    )


def _unwrap(result: OperationResult, fallback: str):
    if isinstance(result, Failure):
        status = 404 if result.kind == ErrorKind.NOT_FOUND else 400
        raise HTTPException(status_code=status, detail=result.message or fallback)
    return result.data


def _image_from_upload(upload: Optional[UploadFile]) -> Optional[ImageFile]:
    if upload is None or not upload.filename:
        return None
    return ImageFile(filename=upload.filename, content=upload.file.read(), content_type=upload.content_type)


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


@router.get("/projects", response_model=ProjectPage)
def list_projects(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_LIMIT),
    store: CatalogStore = Depends(get_store),
) -> ProjectPage:
    """List projects with their tags and contributors, newest first."""
    return _unwrap(ProjectQueryService(store).list_projects(page=page, limit=limit), "Failed to fetch projects")


@router.post("/projects", response_model=Project, status_code=201, responses=_ERROR_RESPONSES)
def create_project(
    name: str = Form(..., min_length=1),
    github_link: Optional[str] = Form(None),
    demo_link: Optional[str] = Form(None),
    description: str = Form(""),
    tech_stacks: list[str] = Form(default=[]),
    tag_ids: list[str] = Form(default=[]),
    thumbnail: Optional[UploadFile] = File(None),
    orchestrator: ProjectCreationOrchestrator = Depends(get_orchestrator),
) -> Project:
    """Create a project, link its tags and import contributors from its repository."""
    if not name.strip():
        raise HTTPException(status_code=400, detail="Project name is required")
    fields = ProjectCreate(
        name=name.strip(),
        github_link=_blank_to_none(github_link),
        demo_link=_blank_to_none(demo_link),
        description=description,
        tech_stacks=[s.strip() for s in tech_stacks if s.strip()],
        tag_ids=[t.strip() for t in tag_ids if t.strip()],
    )
    result = orchestrator.create_project(fields, _image_from_upload(thumbnail))
    return _unwrap(result, "Failed to add project")


@router.post("/projects/images", response_model=UploadedImage, responses=_ERROR_RESPONSES)
def upload_project_image(
    image: Optional[UploadFile] = File(None),
    uploader: ImageUploader = Depends(get_uploader),
) -> UploadedImage:
    """Upload a standalone image into the projects folder and return its URL."""
    payload = _image_from_upload(image)
    if payload is None:
        raise HTTPException(status_code=400, detail="Image is required")
    return _unwrap(uploader.upload(payload, THUMBNAIL_FOLDER), "Failed to upload image.")


@router.get("/projects/{project_id}", response_model=ProjectDetail, responses=_ERROR_RESPONSES)
def get_project(project_id: str, store: CatalogStore = Depends(get_store)) -> ProjectDetail:
    return _unwrap(ProjectQueryService(store).get_project(project_id), "Project not found")


@router.patch("/projects/{project_id}", response_model=Project, responses=_ERROR_RESPONSES)
def update_project(
    project_id: str,
    name: Optional[str] = Form(None, min_length=1),
    github_link: Optional[str] = Form(None),
    demo_link: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    tech_stacks: Optional[list[str]] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    store: CatalogStore = Depends(get_store),
    uploader: ImageUploader = Depends(get_uploader),
) -> Project:
    """Apply the submitted fields; omitted or blank fields keep their value."""
    changes: dict = {}
    if name is not None and name.strip():
        changes["name"] = name.strip()
    if github_link is not None:
        changes["github_link"] = _blank_to_none(github_link)
    if demo_link is not None:
        changes["demo_link"] = _blank_to_none(demo_link)
    if description is not None:
        changes["description"] = description
    if tech_stacks is not None:
        changes["tech_stacks"] = [s.strip() for s in tech_stacks if s.strip()]
    service = ProjectUpdateService(store, uploader)
    result = service.update_project(project_id, ProjectUpdate(**changes), _image_from_upload(thumbnail))
    return _unwrap(result, "Failed to update project")


@router.delete("/projects/{project_id}", status_code=204, responses=_ERROR_RESPONSES)
def delete_project(project_id: str, store: CatalogStore = Depends(get_store)) -> Response:
    _unwrap(ProjectDeleteService(store).delete_project(project_id), "Failed to delete project")
    return Response(status_code=204)


@router.get("/projects/{project_id}/contributors", response_model=list[Contributor], responses=_ERROR_RESPONSES)
def list_project_contributors(project_id: str, store: CatalogStore = Depends(get_store)) -> list[Contributor]:
    return _unwrap(ProjectQueryService(store).contributors_for_project(project_id), "Project not found")
