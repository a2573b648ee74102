"""Library registry — one row per indexed library."""
import logging
from typing import List, Optional

from .database import Database, utcnow
from .models import Library
from .vector_store import VectorStore

logger = logging.getLogger(__name__)

_COLUMNS = [
    "name", "description", "owner", "repo", "ref", "sha", "folders",
    "files", "snippets", "timestamp",
]


class LibraryRegistry:
    """Reads and writes the ``libraries`` table.

    Args:
        db:           Database holding the tables.
        vector_store: Used to drop a library's vectors on delete.
    """

    def __init__(self, db: Database, vector_store: VectorStore) -> None:
        self._db = db
        self._vectors = vector_store

    def replace(self, library: Library) -> Library:
        """Delete any existing row for ``library.name`` and insert a new one.

        Both statements run in one transaction.
        """
        self._vectors.init()
        timestamp = utcnow()
        with self._db.transaction() as conn:
            conn.execute("DELETE FROM libraries WHERE name = ?", [library.name])
            conn.execute(
                """
                INSERT INTO libraries
                  (name, description, owner, repo, ref, sha, folders,
                   files, snippets, timestamp)
                VALUES (?, ?, ?, ?, ?, ?, CAST(? AS VARCHAR[]), ?, ?, ?)
                """,
                [
                    library.name, library.description, library.owner,
                    library.repo, library.ref, library.sha,
                    list(library.folders), library.files, library.snippets,
                    timestamp,
                ],
            )
        library.timestamp = timestamp
        logger.info(
            "[LibraryRegistry] Registered %s (ref=%s sha=%s files=%d snippets=%d)",
            library.name, library.ref, library.sha[:12], library.files, library.snippets,
        )
        return library

    def get(self, name: str) -> Optional[Library]:
        self._vectors.init()
        row = self._db.execute(
            f"SELECT {', '.join(_COLUMNS)} FROM libraries WHERE name = ?", [name]
        ).fetchone()
        return self._row_to_library(row) if row else None

    def list(self) -> List[Library]:
        self._vectors.init()
        rows = self._db.execute(
            f"SELECT {', '.join(_COLUMNS)} FROM libraries ORDER BY name"
        ).fetchall()
        return [self._row_to_library(r) for r in rows]

    def delete(self, name: str) -> int:
        """Delete a library with its snippets and vectors.

        Returns:
            Number of library rows removed (0 or 1).
        """
        self._vectors.init()
        with self._db.transaction() as conn:
            conn.execute(
                """
                DELETE FROM snippet_vectors
                WHERE snippet_id IN (SELECT id FROM snippets WHERE library = ?)
                """,
                [name],
            )
            conn.execute("DELETE FROM snippets WHERE library = ?", [name])
            removed = conn.execute(
                "DELETE FROM libraries WHERE name = ? RETURNING name", [name]
            ).fetchall()
        logger.info("[LibraryRegistry] Removed %s (%d row)", name, len(removed))
        return len(removed)

    @staticmethod
    def _row_to_library(row) -> Library:
        data = dict(zip(_COLUMNS, row))
        data["folders"] = list(data["folders"] or [])
        return Library(**data)
