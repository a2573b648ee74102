"""DuckDB persistence: libraries, snippet metadata and canonical vectors."""
from .database import Database
from .library_registry import LibraryRegistry
from .models import (
    Library,
    LibraryStats,
    Snippet,
    SnippetCreate,
    SnippetMatch,
    VectorInput,
    VectorMatch,
)
from .snippet_store import SnippetStore
from .storage import Storage, get_storage, open_storage, set_storage
from .vector_store import VectorStore, VectorStoreState

__all__ = [
    "Database",
    "LibraryRegistry",
    "Library",
    "LibraryStats",
    "Snippet",
    "SnippetCreate",
    "SnippetMatch",
    "VectorInput",
    "VectorMatch",
    "SnippetStore",
    "Storage",
    "get_storage",
    "open_storage",
    "set_storage",
    "VectorStore",
    "VectorStoreState",
]
