"""Linear-scan vector store for snippet embeddings.

Vectors are normalized into the canonical 3072-wide space and persisted as
little-endian float32 BLOBs in the ``snippet_vectors`` table, one row per
snippet.  Search is brute force: every candidate is loaded and scored with
cosine similarity.

Writes never overwrite a row in place.  An existing row is deleted and the
new one inserted, so there is exactly one row per snippet.
"""
import logging
import time
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import numpy as np

from rdcontext.embeddings.normalizer import (
    EmbeddingNormalizer,
    ProviderLike,
    VectorLike,
    cosine_similarity,
)
from rdcontext.errors import RdContextError

from .database import Database
from .models import VectorInput, VectorMatch

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50
_VECTOR_DTYPE = np.dtype("<f4")


@dataclass
class VectorStoreState:
    """Initialisation state owned by whoever builds the store.

    Attributes:
        initialized: Schema checked and the store ready for use.
        native_index: Whether a native vector index is in use.  Always
                      False: the linear-scan table is the only backend.
    """
    initialized: bool = False
    native_index: bool = False


class VectorStore:
    """Persists canonical vectors and answers nearest-neighbour queries.

    Args:
        db:         Database holding the ``snippet_vectors`` table.
        state:      Caller-owned init state (a fresh one by default).
        normalizer: Canonical-space normalizer.
        batch_size: Rows per INSERT sub-batch in ``store_vectors``.
    """

    def __init__(
        self,
        db: Database,
        state: Optional[VectorStoreState] = None,
        normalizer: Optional[EmbeddingNormalizer] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self._db = db
        self._state = state if state is not None else VectorStoreState()
        self._normalizer = normalizer or EmbeddingNormalizer()
        self._batch_size = batch_size

    @property
    def state(self) -> VectorStoreState:
        return self._state

    @property
    def dimension(self) -> int:
        return self._normalizer.canonical_dim

    def init(self) -> None:
        """Prepare the store on first use.  Safe to call repeatedly."""
        if self._state.initialized:
            return
        self._db.initialize()
        logger.info(
            "[VectorStore] Using linear-scan vector table (dim=%d)", self.dimension
        )
        self._state.initialized = True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def store_vector(self, snippet_id: int, embedding: VectorLike, provider: ProviderLike) -> None:
        """Normalize and store one vector, replacing any existing row."""
        self.init()
        blob = self._encode(self._normalizer.normalize(embedding, provider))

        with self._db.transaction() as conn:
            conn.execute("DELETE FROM snippet_vectors WHERE snippet_id = ?", [snippet_id])
            conn.execute(
                "INSERT INTO snippet_vectors (snippet_id, embedding) VALUES (?, ?)",
                [snippet_id, blob],
            )

    def store_vectors(self, records: Sequence[VectorInput]) -> int:
        """Normalize and store a batch of vectors.

        Existing rows for the batch's snippet ids are deleted first, then the
        new rows are inserted in sub-batches of ``batch_size``, each in its
        own transaction.  When a snippet id repeats, its last record is kept.
        A record that fails normalization is logged and left out; a failing
        sub-batch is rolled back and the error propagates.

        Returns:
            Number of rows inserted.
        """
        self.init()
        if not records:
            return 0

        # last record wins for a repeated snippet id
        latest = {record.snippet_id: record for record in records}

        rows: list[tuple[int, bytes]] = []
        for record in latest.values():
            try:
                normalized = self._normalizer.normalize(record.embedding, record.provider)
            except RdContextError as exc:
                logger.warning(
                    "[VectorStore] Skipping vector for snippet %s: %s",
                    record.snippet_id, exc,
                )
                continue
            rows.append((record.snippet_id, self._encode(normalized)))

        self._delete_ids(list(latest))

        inserted = 0
        total_batches = (len(rows) + self._batch_size - 1) // self._batch_size
        for start in range(0, len(rows), self._batch_size):
            batch = rows[start:start + self._batch_size]
            batch_num = start // self._batch_size + 1
            try:
                with self._db.transaction():
                    self._db.executemany(
                        "INSERT INTO snippet_vectors (snippet_id, embedding) VALUES (?, ?)",
                        batch,
                    )
            except Exception:
                logger.exception(
                    "[VectorStore] Insert batch %d/%d failed (%d rows)",
                    batch_num, total_batches, len(batch),
                )
                raise
            inserted += len(batch)
            logger.debug(
                "[VectorStore] Inserted batch %d/%d (%d rows)",
                batch_num, total_batches, len(batch),
            )
        return inserted

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def similarity_search(
        self,
        query_vector: VectorLike,
        provider: ProviderLike,
        limit: int = 10,
        library: Optional[str] = None,
    ) -> list[VectorMatch]:
        """Rank stored vectors by cosine distance to *query_vector*.

        Args:
            query_vector: Raw query embedding (normalized here).
            provider:     Provider that produced *query_vector*.
            limit:        Maximum results.
            library:      Only consider snippets of this library.

        Returns:
            ``VectorMatch`` list sorted by ascending ``distance``
            (``1 - similarity``).  Equal distances keep snippet-id order.
        """
        self.init()
        query = self._normalizer.normalize(query_vector, provider)
        if limit <= 0:
            return []

        if library is not None:
            rows = self._db.execute(
                """
                SELECT v.snippet_id, v.embedding
                FROM snippet_vectors v
                JOIN snippets s ON s.id = v.snippet_id
                WHERE s.library = ?
                ORDER BY v.snippet_id
                """,
                [library],
            ).fetchall()
        else:
            rows = self._db.execute(
                "SELECT snippet_id, embedding FROM snippet_vectors ORDER BY snippet_id"
            ).fetchall()

        matches = [
            VectorMatch(
                snippet_id=int(snippet_id),
                distance=1.0 - cosine_similarity(query, self._decode(blob)),
            )
            for snippet_id, blob in rows
        ]
        matches.sort(key=lambda m: m.distance)
        return matches[:limit]

    # ------------------------------------------------------------------
    # Deletes / counts
    # ------------------------------------------------------------------

    def delete_vectors_by_library(self, library: str) -> int:
        """Delete every vector whose snippet belongs to *library*.

        Returns:
            Number of vector rows removed (0 for an empty library).
        """
        self.init()
        snippet_ids = [
            row[0]
            for row in self._db.execute(
                "SELECT id FROM snippets WHERE library = ?", [library]
            ).fetchall()
        ]
        if not snippet_ids:
            return 0
        removed = self._delete_ids(snippet_ids)
        logger.debug("[VectorStore] Deleted %d vectors for %s", removed, library)
        return removed

    def delete_vector(self, snippet_id: int) -> bool:
        self.init()
        result = self._db.execute(
            "DELETE FROM snippet_vectors WHERE snippet_id = ? RETURNING snippet_id",
            [snippet_id],
        ).fetchone()
        return result is not None

    def get_vector_count(self, library: Optional[str] = None) -> int:
        self.init()
        if library is None:
            row = self._db.execute("SELECT COUNT(*) FROM snippet_vectors").fetchone()
        else:
            row = self._db.execute(
                """
                SELECT COUNT(*)
                FROM snippet_vectors v
                JOIN snippets s ON s.id = v.snippet_id
                WHERE s.library = ?
                """,
                [library],
            ).fetchone()
        return int(row[0]) if row else 0

    def health_check(self) -> dict:
        """Report readiness, row count, dimension and count-query latency."""
        self.init()
        start = time.monotonic()
        count = self.get_vector_count()
        elapsed_ms = (time.monotonic() - start) * 1000
        return {
            "enabled": self._state.initialized,
            "native_index": self._state.native_index,
            "vector_count": count,
            "dimension": self.dimension,
            "elapsed_ms": elapsed_ms,
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _delete_ids(self, snippet_ids: Iterable[int]) -> int:
        ids = list(snippet_ids)
        removed = 0
        for start in range(0, len(ids), self._batch_size):
            chunk = ids[start:start + self._batch_size]
            placeholders = ", ".join("?" for _ in chunk)
            removed += len(self._db.execute(
                f"DELETE FROM snippet_vectors WHERE snippet_id IN ({placeholders}) "
                "RETURNING snippet_id",
                chunk,
            ).fetchall())
        return removed

    @staticmethod
    def _encode(vector: np.ndarray) -> bytes:
        return np.asarray(vector, dtype=_VECTOR_DTYPE).tobytes()

    @staticmethod
    def _decode(blob: bytes) -> np.ndarray:
        return np.frombuffer(blob, dtype=_VECTOR_DTYPE)
