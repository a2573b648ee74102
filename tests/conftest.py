"""Shared test fixtures for rdcontext tests."""
import pytest

from rdcontext.config import AppSettings, DatabaseSettings, set_config
from rdcontext.db.storage import open_storage, set_storage
from rdcontext.embeddings.service import EmbeddingService, set_embedding_service

from fakes import FakeEmbeddingProvider


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "rdcontext.duckdb")


@pytest.fixture
def storage(db_path):
    """A fresh file-backed storage bundle."""
    store = open_storage(db_path)
    yield store
    store.close()


@pytest.fixture
def settings(db_path):
    return AppSettings(database=DatabaseSettings(path=db_path))


@pytest.fixture
def fake_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def embedding_service(fake_provider) -> EmbeddingService:
    return EmbeddingService(fake_provider)


@pytest.fixture(autouse=True)
def reset_singletons():
    """Ensure no process-wide config, storage or embedding service leaks between tests."""
    yield
    set_config(None)
    set_storage(None)
    set_embedding_service(None)
