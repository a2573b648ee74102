"""Tests for the DuckDB linear-scan VectorStore."""
import numpy as np
import pytest

from rdcontext.db.database import Database
from rdcontext.db.models import SnippetCreate, VectorInput
from rdcontext.db.vector_store import VectorStore, VectorStoreState
from rdcontext.embeddings.normalizer import CANONICAL_DIM

from fakes import unit


@pytest.fixture
def db(tmp_path):
    database = Database(str(tmp_path / "vectors.duckdb"))
    yield database
    database.close()


@pytest.fixture
def store(db) -> VectorStore:
    return VectorStore(db, batch_size=50)


def _insert_snippet(storage, library: str, embedding, provider: str = "openai") -> int:
    return storage.snippets.insert_snippets([SnippetCreate(
        library=library,
        path="README.md",
        title="t",
        description="d",
        code="c",
        embedding=embedding,
        provider=provider,
    )])[0]


class TestInit:
    def test_state_is_caller_owned(self, db):
        state = VectorStoreState()
        store = VectorStore(db, state=state)
        assert state.initialized is False
        store.init()
        assert state.initialized is True
        assert state.native_index is False
        assert store.state is state

    def test_init_is_idempotent(self, store):
        store.init()
        store.init()
        assert store.get_vector_count() == 0

    def test_independent_states(self, db):
        a = VectorStore(db)
        b = VectorStore(db)
        a.init()
        assert a.state.initialized is True
        assert b.state.initialized is False


class TestStore:
    def test_store_vector_persists_canonical_blob(self, store, db):
        store.store_vector(1, np.ones(768), "gemini")
        blob = db.execute(
            "SELECT embedding FROM snippet_vectors WHERE snippet_id = 1"
        ).fetchone()[0]
        assert len(blob) == CANONICAL_DIM * 4
        decoded = np.frombuffer(blob, dtype="<f4")
        assert decoded[:768].tolist() == [1.0] * 768
        assert not decoded[768:].any()

    def test_store_vector_replaces_existing_row(self, store):
        store.store_vector(7, unit(1536, 0), "openai")
        store.store_vector(7, unit(1536, 1), "openai")
        assert store.get_vector_count() == 1
        matches = store.similarity_search(unit(1536, 1), "openai", limit=1)
        assert matches[0].snippet_id == 7
        assert matches[0].distance == pytest.approx(0.0)

    def test_store_vector_keeps_old_row_when_insert_fails(self, store):
        store.store_vector(7, unit(1536, 0), "openai")
        store._encode = lambda vector: object()
        with pytest.raises(Exception):
            store.store_vector(7, unit(1536, 1), "openai")
        del store._encode

        assert store.get_vector_count() == 1
        matches = store.similarity_search(unit(1536, 0), "openai", limit=1)
        assert matches[0].snippet_id == 7
        assert matches[0].distance == pytest.approx(0.0)

    def test_store_vectors_last_record_wins_for_repeated_id(self, store):
        records = [
            VectorInput(snippet_id=1, embedding=unit(1536, 0), provider="openai"),
            VectorInput(snippet_id=2, embedding=unit(1536, 2), provider="openai"),
            VectorInput(snippet_id=1, embedding=unit(1536, 1), provider="openai"),
        ]
        assert store.store_vectors(records) == 2
        assert store.get_vector_count() == 2
        matches = store.similarity_search(unit(1536, 1), "openai", limit=1)
        assert matches[0].snippet_id == 1
        assert matches[0].distance == pytest.approx(0.0)

    def test_store_vectors_120_rows_with_batches_of_50(self, store):
        records = [
            VectorInput(snippet_id=i, embedding=np.full(1536, i + 1.0), provider="openai")
            for i in range(1, 121)
        ]
        assert store.store_vectors(records) == 120
        assert store.get_vector_count() == 120

    def test_store_vectors_empty_batch(self, store):
        assert store.store_vectors([]) == 0

    def test_store_vectors_skips_unsupported_widths(self, store):
        records = [
            VectorInput(snippet_id=1, embedding=np.ones(1536), provider="openai"),
            VectorInput(snippet_id=2, embedding=np.ones(1000), provider="openai"),
            VectorInput(snippet_id=3, embedding=np.ones(768), provider="gemini"),
        ]
        assert store.store_vectors(records) == 2
        assert store.get_vector_count() == 2
        assert store.delete_vector(2) is False

    def test_store_vectors_replaces_existing_rows(self, store):
        first = [VectorInput(i, np.ones(768), "gemini") for i in range(1, 4)]
        store.store_vectors(first)
        store.store_vectors(first)
        assert store.get_vector_count() == 3

    def test_failed_batch_is_rolled_back_and_raised(self, store, db):
        store.init()
        db.execute("INSERT INTO snippet_vectors VALUES (999, 'x'::BLOB)")
        real_delete = store._delete_ids
        store._delete_ids = lambda ids: 0  # leave the conflicting row in place
        records = [VectorInput(i, np.ones(768), "gemini") for i in (998, 999)]
        with pytest.raises(Exception):
            store.store_vectors(records)
        store._delete_ids = real_delete
        assert store.get_vector_count() == 1


class TestSimilaritySearch:
    def test_identical_orthogonal_negated_ordering(self, store):
        query = unit(1536, 0)
        store.store_vector(1, query, "openai")                  # A: identical
        store.store_vector(2, unit(1536, 1), "openai")          # B: orthogonal
        store.store_vector(3, unit(1536, 0, -1.0), "openai")    # C: negation

        matches = store.similarity_search(query, "openai", limit=3)

        assert [m.snippet_id for m in matches] == [1, 2, 3]
        assert matches[0].distance == pytest.approx(0.0)
        assert matches[1].distance == pytest.approx(1.0)
        assert matches[2].distance == pytest.approx(2.0)

    def test_equal_distances_keep_store_order(self, store):
        for snippet_id in (5, 3, 4):
            store.store_vector(snippet_id, unit(1536, 1), "openai")
        matches = store.similarity_search(unit(1536, 0), "openai", limit=3)
        assert [m.snippet_id for m in matches] == [3, 4, 5]

    def test_results_sorted_and_limited(self, store):
        rng = np.random.default_rng(42)
        store.store_vectors([
            VectorInput(i, rng.standard_normal(1536), "openai") for i in range(1, 31)
        ])
        matches = store.similarity_search(rng.standard_normal(1536), "openai", limit=7)
        distances = [m.distance for m in matches]
        assert len(matches) == 7
        assert distances == sorted(distances)

    def test_non_positive_limit(self, store):
        store.store_vector(1, unit(1536, 0), "openai")
        assert store.similarity_search(unit(1536, 0), "openai", limit=0) == []

    def test_cross_provider_query_against_padded_vectors(self, store):
        store.store_vector(1, unit(768, 3), "gemini")
        matches = store.similarity_search(unit(1536, 3), "openai", limit=1)
        assert matches[0].distance == pytest.approx(0.0)

    def test_query_with_unsupported_width_raises(self, store):
        from rdcontext.errors import UnsupportedEmbeddingDimensionError

        with pytest.raises(UnsupportedEmbeddingDimensionError):
            store.similarity_search([1.0, 0.0], "openai")

    def test_library_filter(self, storage):
        a = _insert_snippet(storage, "acme/a", unit(1536, 0))
        _insert_snippet(storage, "acme/b", unit(1536, 0))
        matches = storage.vectors.similarity_search(unit(1536, 0), "openai", 10, library="acme/a")
        assert [m.snippet_id for m in matches] == [a]


class TestDeletesAndCounts:
    def test_delete_vectors_by_library(self, storage):
        _insert_snippet(storage, "acme/a", unit(1536, 0))
        _insert_snippet(storage, "acme/a", unit(1536, 1))
        _insert_snippet(storage, "acme/b", unit(1536, 2))

        assert storage.vectors.delete_vectors_by_library("acme/a") == 2
        assert storage.vectors.get_vector_count() == 1
        assert storage.vectors.get_vector_count("acme/a") == 0
        assert storage.vectors.get_vector_count("acme/b") == 1

    def test_delete_vectors_by_unknown_library_returns_zero(self, storage):
        assert storage.vectors.delete_vectors_by_library("nobody/nothing") == 0

    def test_delete_vector(self, store):
        store.store_vector(1, unit(1536, 0), "openai")
        assert store.delete_vector(1) is True
        assert store.delete_vector(1) is False
        assert store.get_vector_count() == 0


class TestHealthCheck:
    def test_reports_state_and_count(self, store):
        store.store_vector(1, unit(1536, 0), "openai")
        report = store.health_check()
        assert report["enabled"] is True
        assert report["native_index"] is False
        assert report["vector_count"] == 1
        assert report["dimension"] == CANONICAL_DIM
        assert report["elapsed_ms"] >= 0
