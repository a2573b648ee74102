"""``add`` — index a library's documentation."""
import logging
from typing import Optional

from rdcontext.config import AppSettings, get_config
from rdcontext.db.storage import Storage, get_storage
from rdcontext.embeddings.service import (
    EmbeddingService,
    create_embedding_provider,
    get_embedding_service,
)
from rdcontext.errors import RdContextError
from rdcontext.extraction.extractor import GeminiSnippetExtractor, SnippetExtractor
from rdcontext.github.client import GitHubClient
from rdcontext.ingest.pipeline import AddOptions, IngestionPipeline, IngestionSummary

logger = logging.getLogger(__name__)


async def add(
    options: AddOptions,
    settings: Optional[AppSettings] = None,
    storage: Optional[Storage] = None,
    embeddings: Optional[EmbeddingService] = None,
    source: Optional[GitHubClient] = None,
    extractor: Optional[SnippetExtractor] = None,
) -> IngestionSummary:
    """Run the ingestion pipeline for one library.

    Collaborators not passed in are built from *settings*; the ones built
    here are closed before returning.  Errors propagate: the caller must
    know the library was not fully indexed.
    """
    settings = settings or get_config()
    storage = storage or get_storage(settings)
    owned: list = []

    if embeddings is None:
        embeddings = get_embedding_service()
    if embeddings is None:
        embeddings = EmbeddingService(create_embedding_provider(settings))
        owned.append(embeddings)
    if source is None:
        source = GitHubClient(token=options.token or settings.secrets.github.token)
        owned.append(source)
    if extractor is None:
        extractor = GeminiSnippetExtractor(
            api_key=settings.secrets.gemini.api_key,
            model_id=settings.extraction.model,
        )
        owned.append(extractor)

    pipeline = IngestionPipeline(
        source=source,
        extractor=extractor,
        embeddings=embeddings,
        snippets=storage.snippets,
        libraries=storage.libraries,
        file_batch_size=settings.ingestion.file_batch_size,
        embedding_batch_size=settings.ingestion.embedding_batch_size,
        extensions=settings.ingestion.extensions,
    )
    try:
        return await pipeline.add(options)
    except RdContextError:
        raise
    except Exception:
        logger.exception("[add] Indexing %s failed", options.name)
        raise
    finally:
        for resource in owned:
            await resource.aclose()
