"""rdcontext HTTP server.

Serves the add/get/list/rm operations over HTTP so that editors and agents
can pull version-pinned documentation snippets.

Routers:
    - libraries: list, add, search, stats and remove indexed libraries
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from rdcontext import __version__
from rdcontext.config import get_config
from rdcontext.db.storage import get_storage, set_storage
from rdcontext.embeddings.service import (
    EmbeddingService,
    create_embedding_provider,
    get_embedding_service,
    set_embedding_service,
)
from rdcontext.handlers import health as storage_health
from rdcontext.logging_config import configure_logging

from .router import router as libraries_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open storage and the embedding service; close both on shutdown."""
    config = get_config()
    configure_logging(config.logging.level)

    storage = get_storage(config)
    logger.info("Storage ready: %s", config.database.path)

    if get_embedding_service() is None:
        try:
            set_embedding_service(EmbeddingService(create_embedding_provider(config)))
            logger.info(
                "Embedding service ready: provider=%s model=%s",
                config.embedding.provider,
                config.embedding.model,
            )
        except Exception as exc:
            logger.warning("Failed to initialise embedding service: %s", exc)

    logger.info(
        "Server running on http://%s:%d", config.server.host, config.server.port
    )

    yield

    service = get_embedding_service()
    if service is not None:
        await service.aclose()
        set_embedding_service(None)
    storage.close()
    set_storage(None)
    logger.info("Application shutdown complete")


app = FastAPI(
    title="rdcontext API",
    description="Version-pinned documentation snippets for coding agents",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(libraries_router)


@app.get("/health")
async def health() -> dict:
    """Storage health: ``healthy``, ``degraded`` or ``error``."""
    return storage_health()
