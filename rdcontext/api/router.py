"""Library endpoints.

Endpoints:
    GET    /libraries                              — indexed libraries
    POST   /libraries                              — index (or re-index) a library
    GET    /libraries/{owner}/{repo}/snippets      — formatted snippets, optionally by topic
    GET    /libraries/{owner}/{repo}/stats         — snippet/vector counts and search config
    DELETE /libraries/{owner}/{repo}               — remove a library
"""
import logging
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from rdcontext import handlers
from rdcontext.errors import InvalidLibraryNameError, MissingApiKeyError
from rdcontext.ingest.pipeline import AddOptions

from .schemas import (
    AddLibraryRequest,
    AddLibraryResponse,
    LibraryItem,
    LibraryListResponse,
    RemoveLibraryResponse,
    SnippetsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/libraries", tags=["libraries"])


@router.get("", response_model=LibraryListResponse)
async def list_libraries() -> LibraryListResponse | JSONResponse:
    try:
        libraries = handlers.list_libraries()
    except Exception as exc:
        logger.exception("[libraries/list] Failed: %s", exc)
        return JSONResponse({"error": f"Failed to list libraries: {exc}"}, status_code=500)
    return LibraryListResponse(
        libraries=[LibraryItem(**library.to_dict()) for library in libraries]
    )


@router.post("", response_model=AddLibraryResponse)
async def add_library(request: AddLibraryRequest) -> AddLibraryResponse | JSONResponse:
    """Run the ingestion pipeline for one library and wait for it to finish."""
    logger.info("[libraries/add] Received: %s", request.name)
    options = AddOptions(
        name=request.name,
        branch=request.branch,
        tag=request.tag,
        folders=list(request.folders),
    )
    try:
        summary = await handlers.add(options)
    except (InvalidLibraryNameError, ValueError) as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    except MissingApiKeyError as exc:
        return JSONResponse({"error": exc.message}, status_code=503)
    except Exception as exc:
        logger.exception("[libraries/add] Ingestion failed: %s", exc)
        return JSONResponse({"error": f"Ingestion failed: {exc}"}, status_code=500)
    return AddLibraryResponse(**summary.to_dict())


@router.get("/{owner}/{repo}/snippets", response_model=SnippetsResponse)
async def get_snippets(
    owner: str,
    repo: str,
    topic: Optional[str] = None,
    k: int = Query(default=10, ge=1, le=100),
    cross_provider: bool = False,
) -> SnippetsResponse:
    name = f"{owner}/{repo}".lower()
    content = await handlers.get(name, topic=topic, k=k, cross_provider=cross_provider)
    return SnippetsResponse(
        library=name, topic=topic, k=k, cross_provider=cross_provider, content=content
    )


@router.get("/{owner}/{repo}/stats", response_model=None)
async def get_stats(
    owner: str,
    repo: str,
    topic: Optional[str] = None,
    k: int = Query(default=10, ge=1, le=100),
    cross_provider: bool = False,
) -> dict | JSONResponse:
    name = f"{owner}/{repo}".lower()
    try:
        return await handlers.get_with_stats(name, topic=topic, k=k, cross_provider=cross_provider)
    except Exception as exc:
        logger.exception("[libraries/stats] Failed: %s", exc)
        return JSONResponse({"error": f"Failed to load stats: {exc}"}, status_code=500)


@router.delete("/{owner}/{repo}", response_model=RemoveLibraryResponse)
async def remove_library(owner: str, repo: str) -> RemoveLibraryResponse | JSONResponse:
    name = f"{owner}/{repo}".lower()
    try:
        removed = handlers.rm(name)
    except Exception as exc:
        logger.exception("[libraries/rm] Failed: %s", exc)
        return JSONResponse({"error": f"Failed to remove library: {exc}"}, status_code=500)
    if removed == 0:
        return JSONResponse({"error": f"Library {name} not found"}, status_code=404)
    return RemoveLibraryResponse(library=name, removed=removed)
