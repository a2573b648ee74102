"""Snippet metadata store.

Owns the ``snippets`` table and coordinates with the VectorStore:

* metadata rows for a batch are written in one transaction;
* their vectors are written afterwards, outside that transaction.

A vector-store failure does not roll back committed metadata; it is logged
and shows up as a gap between snippet and vector counts in
``health_check`` / ``get_library_stats``.
"""
import logging
import time
from typing import Optional, Sequence

from rdcontext.embeddings.normalizer import ProviderLike, VectorLike, coerce_provider

from .database import Database, utcnow
from .models import LibraryStats, Snippet, SnippetCreate, SnippetMatch, VectorInput
from .vector_store import VectorStore

logger = logging.getLogger(__name__)

_SNIPPET_COLUMNS = (
    "id", "library", "path", "title", "description", "language", "code",
    "provider", "embedding_dims", "created_at",
)
_SELECT = f"SELECT {', '.join(_SNIPPET_COLUMNS)} FROM snippets"

# Candidate over-fetch factors for the vector layer.
SEARCH_OVERFETCH = 2
CROSS_PROVIDER_OVERFETCH = 3


class SnippetStore:
    """Snippet metadata persistence plus vector coordination.

    Args:
        db:           Database holding the ``snippets`` table.
        vector_store: Store for the snippets' canonical vectors.
    """

    def __init__(self, db: Database, vector_store: VectorStore) -> None:
        self._db = db
        self._vectors = vector_store

    @property
    def vector_store(self) -> VectorStore:
        return self._vectors

    def init(self) -> None:
        self._vectors.init()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_snippets(self, records: Sequence[SnippetCreate]) -> list[int]:
        """Insert snippet metadata, then store the vectors.

        Returns:
            Generated snippet ids, in input order.

        Raises:
            Exception: If the metadata transaction fails (nothing is kept).
        """
        self.init()
        if not records:
            return []

        inserted_ids: list[int] = []
        with self._db.transaction() as conn:
            for record in records:
                provider = coerce_provider(record.provider)
                row = conn.execute(
                    """
                    INSERT INTO snippets
                      (library, path, title, description, language, code,
                       provider, embedding_dims, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    RETURNING id
                    """,
                    [
                        record.library, record.path, record.title,
                        record.description, record.language, record.code,
                        provider.value, len(record.embedding), utcnow(),
                    ],
                ).fetchone()
                inserted_ids.append(int(row[0]))

        vectors = [
            VectorInput(snippet_id=snippet_id, embedding=record.embedding, provider=record.provider)
            for snippet_id, record in zip(inserted_ids, records)
        ]
        try:
            stored = self._vectors.store_vectors(vectors)
        except Exception as exc:
            logger.warning(
                "[SnippetStore] Stored %d snippets but vector storage failed: %s",
                len(inserted_ids), exc,
            )
        else:
            logger.info(
                "[SnippetStore] Stored %d snippets with %d vectors (normalized to %dd)",
                len(inserted_ids), stored, self._vectors.dimension,
            )
        return inserted_ids

    def delete_library_snippets(self, library: str) -> None:
        """Delete a library's vectors, then its snippet rows.

        Failures are logged and swallowed: a library being indexed for the
        first time has nothing to delete.
        """
        self.init()
        try:
            removed_vectors = self._vectors.delete_vectors_by_library(library)
            removed = self._db.execute(
                "DELETE FROM snippets WHERE library = ? RETURNING id", [library]
            ).fetchall()
            logger.info(
                "[SnippetStore] Deleted %d snippets (%d vectors) for library %s",
                len(removed), removed_vectors, library,
            )
        except Exception as exc:
            logger.warning(
                "[SnippetStore] Could not delete existing snippets for %s: %s",
                library, exc,
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_all_snippets(self, library: str, limit: int = 10) -> list[Snippet]:
        """Metadata-only listing in storage order."""
        self.init()
        rows = self._db.execute(
            f"{_SELECT} WHERE library = ? ORDER BY id LIMIT ?", [library, limit]
        ).fetchall()
        return [self._row_to_snippet(r) for r in rows]

    def similarity_search(
        self,
        library: str,
        query_embedding: VectorLike,
        provider: ProviderLike,
        limit: int = 10,
    ) -> list[SnippetMatch]:
        """Snippets of *library* embedded by *provider*, most similar first."""
        return self._search(
            library, query_embedding, provider, limit,
            overfetch=SEARCH_OVERFETCH, same_provider=True,
        )

    def cross_provider_search(
        self,
        library: str,
        query_embedding: VectorLike,
        provider: ProviderLike,
        limit: int = 10,
    ) -> list[SnippetMatch]:
        """Like ``similarity_search`` but across every provider's snippets.

        All stored vectors share the canonical space, so a Gemini query can
        be scored against OpenAI-embedded snippets and vice versa.
        """
        return self._search(
            library, query_embedding, provider, limit,
            overfetch=CROSS_PROVIDER_OVERFETCH, same_provider=False,
        )

    def get_library_stats(self, library: str) -> LibraryStats:
        self.init()
        rows = self._db.execute(
            """
            SELECT provider, COUNT(*), SUM(embedding_dims)
            FROM snippets
            WHERE library = ?
            GROUP BY provider
            ORDER BY provider
            """,
            [library],
        ).fetchall()
        total = sum(int(count) for _, count, _ in rows)
        dims_sum = sum(int(dims) for _, _, dims in rows)
        return LibraryStats(
            total_snippets=total,
            by_provider={provider: int(count) for provider, count, _ in rows},
            avg_embedding_dims=dims_sum / total if total else 0.0,
            vector_count=self._vectors.get_vector_count(library),
        )

    def health_check(self) -> dict:
        """Probe metadata and vector storage.  Never raises.

        Returns:
            ``status`` is ``healthy`` when both probes pass, ``degraded`` when
            one does, ``error`` otherwise.
        """
        start = time.monotonic()
        details: dict = {}

        try:
            self.init()
            self._db.execute("SELECT id FROM snippets LIMIT 1").fetchall()
            metadata_ok = True
        except Exception as exc:
            metadata_ok = False
            details["metadata_error"] = str(exc)

        try:
            vector_check = self._vectors.health_check()
            details["vector_check"] = vector_check
            vectors_ok = bool(vector_check["enabled"])
        except Exception as exc:
            vectors_ok = False
            details["vector_error"] = str(exc)

        if metadata_ok and vectors_ok:
            status = "healthy"
        elif metadata_ok or vectors_ok:
            status = "degraded"
        else:
            status = "error"

        return {
            "status": status,
            "metadata": metadata_ok,
            "vectors": vectors_ok,
            "elapsed_ms": (time.monotonic() - start) * 1000,
            "details": details,
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _search(
        self,
        library: str,
        query_embedding: VectorLike,
        provider: ProviderLike,
        limit: int,
        overfetch: int,
        same_provider: bool,
    ) -> list[SnippetMatch]:
        self.init()
        if limit <= 0:
            return []
        provider_name = coerce_provider(provider)
        candidates = self._vectors.similarity_search(
            query_embedding, provider_name, limit * overfetch, library
        )
        if not candidates:
            return []

        distances = {c.snippet_id: c.distance for c in candidates}
        placeholders = ", ".join("?" for _ in distances)
        sql = f"{_SELECT} WHERE id IN ({placeholders})"
        params: list = list(distances)
        if same_provider:
            sql += " AND provider = ?"
            params.append(provider_name.value)

        snippets = [self._row_to_snippet(r) for r in self._db.execute(sql, params).fetchall()]
        matches = [SnippetMatch(snippet=s, similarity=1.0 - distances[s.id]) for s in snippets]
        matches.sort(key=lambda m: m.similarity, reverse=True)
        return matches[:limit]

    @staticmethod
    def _row_to_snippet(row) -> Snippet:
        return Snippet(**dict(zip(_SNIPPET_COLUMNS, row)))
