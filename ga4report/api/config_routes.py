"""GA4 Reports: URL Config Routes."""

from typing import List, Optional, Union

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ga4report.core.logging import get_logger
from ga4report.repositories.url_config import UrlConfigRepository, get_url_repository

logger = get_logger("api.config")

router = APIRouter(prefix="/api/config", tags=["Config"])


# ── Request Models ──


class AddUrlRequest(BaseModel):
    """Body for POST /api/config/urls."""

    url: Optional[str] = None


class RemoveUrlRequest(BaseModel):
    """Body for DELETE /api/config/urls. ``url`` may be a 1-based index."""

    url: Optional[Union[int, str]] = None


class ReplaceUrlsRequest(BaseModel):
    """Body for PUT /api/config/urls."""

    urls: Optional[List[str]] = None


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, "error": message})


# ── Endpoints ──


@router.get("/urls")
def list_urls(repo: UrlConfigRepository = Depends(get_url_repository)):
    config = repo.list_urls()
    return {
        "success": True,
        "urls": config.urls,
        "total": len(config.urls),
        "lastUpdated": config.last_updated,
        "description": config.description,
    }


@router.post("/urls", status_code=201)
def add_url(
    request: Optional[AddUrlRequest] = Body(None),
    repo: UrlConfigRepository = Depends(get_url_repository),
):
    if request is None or not request.url:
        return _bad_request('The "url" field is required')
    return repo.add_url(request.url)


@router.delete("/urls")
def remove_url(
    request: Optional[RemoveUrlRequest] = Body(None),
    repo: UrlConfigRepository = Depends(get_url_repository),
):
    if request is None or request.url in (None, ""):
        return _bad_request('The "url" field is required to remove a URL')
    return repo.remove_url(str(request.url))


@router.put("/urls")
def replace_urls(
    request: Optional[ReplaceUrlsRequest] = Body(None),
    repo: UrlConfigRepository = Depends(get_url_repository),
):
    if request is None or request.urls is None:
        return _bad_request('The "urls" field must be a list')
    return repo.replace_urls(request.urls)
