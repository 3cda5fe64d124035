from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from catalog_api.adapters.catalog_store import CatalogStore
from catalog_api.models.error import ErrorDetail
from catalog_api.models.result import Failure
from catalog_api.models.tag import Tag, TagCreate
from catalog_api.services.tag_service import TagService

router = APIRouter()


def get_store(request: Request) -> CatalogStore:
    return request.app.state.catalog_store


@router.post("/tags", response_model=Tag, status_code=201, responses={400: {"model": ErrorDetail}})
def create_tag(payload: TagCreate, store: CatalogStore = Depends(get_store)) -> Tag:
    """Create a tag. Names are unique, case-insensitively."""
    result = TagService(store).create_tag(payload)
    if isinstance(result, Failure):
        raise HTTPException(status_code=400, detail=result.message)
    return result.data


@router.get("/tags", response_model=list[Tag])
def list_tags(store: CatalogStore = Depends(get_store)) -> list[Tag]:
    result = TagService(store).list_tags()
    if isinstance(result, Failure):
        raise HTTPException(status_code=400, detail=result.message)
    return result.data
