"""Row types for the rdcontext tables."""
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Optional, Sequence, Union

import numpy as np

from rdcontext.embeddings.normalizer import EmbeddingProviderName


@dataclass
class Library:
    """One indexed documentation source (``owner/repo``)."""

    name: str
    owner: str
    repo: str
    ref: str
    sha: str
    description: Optional[str] = None
    folders: list[str] = field(default_factory=list)
    files: int = 0
    snippets: int = 0
    timestamp: Optional[datetime] = None

    def to_dict(self) -> dict:
        d = asdict(self)
        if isinstance(self.timestamp, datetime):
            d["timestamp"] = self.timestamp.isoformat()
        return d


@dataclass
class Snippet:
    """One extracted unit of example code (metadata only, no vector)."""

    id: int
    library: str
    path: str
    title: str
    description: str
    language: Optional[str]
    code: str
    provider: str
    embedding_dims: int
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        d = asdict(self)
        if isinstance(self.created_at, datetime):
            d["created_at"] = self.created_at.isoformat()
        return d


@dataclass
class SnippetMatch:
    """A snippet returned by similarity search, with its score."""

    snippet: Snippet
    similarity: float

    def to_dict(self) -> dict:
        d = self.snippet.to_dict()
        d["similarity"] = self.similarity
        return d


@dataclass
class SnippetCreate:
    """Metadata + raw provider embedding for a snippet about to be stored."""

    library: str
    path: str
    title: str
    description: str
    code: str
    embedding: Sequence[float]
    provider: Union[EmbeddingProviderName, str]
    language: Optional[str] = None


@dataclass
class VectorInput:
    """A raw embedding waiting to be normalized and stored."""

    snippet_id: int
    embedding: Union[Sequence[float], np.ndarray]
    provider: Union[EmbeddingProviderName, str]


@dataclass
class VectorMatch:
    snippet_id: int
    distance: float


@dataclass
class LibraryStats:
    """Snippet/vector counts for one library."""

    total_snippets: int = 0
    by_provider: dict[str, int] = field(default_factory=dict)
    avg_embedding_dims: float = 0.0
    vector_count: int = 0

    def to_dict(self) -> dict:
        return asdict(self)
