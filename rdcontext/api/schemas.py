"""Pydantic schemas for the rdcontext HTTP API."""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class AddLibraryRequest(BaseModel):
    """Request body for POST /libraries."""

    name: str = Field(..., description="Library in owner/repo format")
    branch: Optional[str] = Field(default=None, description="Branch to index")
    tag: Optional[str] = Field(default=None, description="Tag to index (excludes branch)")
    folders: List[str] = Field(
        default_factory=list, description="Only index files under these folder prefixes"
    )


class LibraryStatsResponse(BaseModel):
    total_snippets: int
    by_provider: Dict[str, int]
    avg_embedding_dims: float
    vector_count: int


class AddLibraryResponse(BaseModel):
    """Summary of a completed ingestion run."""

    library: str
    snippets: int
    provider: str
    model: str
    original_dimensions: int
    normalized_dimensions: int
    files: int
    stats: LibraryStatsResponse
    stage: str


class LibraryItem(BaseModel):
    name: str
    owner: str
    repo: str
    ref: str
    sha: str
    description: Optional[str] = None
    folders: List[str] = Field(default_factory=list)
    files: int = 0
    snippets: int = 0
    timestamp: Optional[str] = None


class LibraryListResponse(BaseModel):
    libraries: List[LibraryItem]


class SnippetsResponse(BaseModel):
    """Formatted snippet text for GET /libraries/{owner}/{repo}/snippets."""

    library: str
    topic: Optional[str] = None
    k: int
    cross_provider: bool = False
    content: str


class RemoveLibraryResponse(BaseModel):
    library: str
    removed: int
