"""Storage bundle: one Database plus the stores built on it."""
import logging
from dataclasses import dataclass
from typing import Optional

from rdcontext.config import AppSettings, get_config

from .database import Database
from .library_registry import LibraryRegistry
from .snippet_store import SnippetStore
from .vector_store import VectorStore, VectorStoreState

logger = logging.getLogger(__name__)


@dataclass
class Storage:
    database: Database
    vectors: VectorStore
    snippets: SnippetStore
    libraries: LibraryRegistry

    def close(self) -> None:
        self.database.close()


def open_storage(path: str, vector_batch_size: int = 50) -> Storage:
    """Open (and initialise) the database at *path*."""
    database = Database(path)
    vectors = VectorStore(database, state=VectorStoreState(), batch_size=vector_batch_size)
    vectors.init()
    return Storage(
        database=database,
        vectors=vectors,
        snippets=SnippetStore(database, vectors),
        libraries=LibraryRegistry(database, vectors),
    )


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_storage: Optional[Storage] = None


def get_storage(settings: Optional[AppSettings] = None) -> Storage:
    """Return the process-wide Storage, opening it from *settings* on first use."""
    global _storage
    if _storage is None:
        settings = settings or get_config()
        _storage = open_storage(
            settings.database.path,
            vector_batch_size=settings.ingestion.vector_batch_size,
        )
        logger.debug("[Storage] Opened %s", settings.database.path)
    return _storage


def set_storage(storage: Optional[Storage]) -> None:
    """Set (or clear) the process-wide Storage."""
    global _storage
    _storage = storage
