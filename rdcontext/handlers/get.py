"""``get`` — retrieve snippets for a library, optionally ranked by topic.

Retrieval never raises past this module: failures come back as a
human-readable string.
"""
import logging
import time
from typing import Optional, Union

from rdcontext.db.models import Snippet, SnippetMatch
from rdcontext.db.storage import Storage, get_storage
from rdcontext.embeddings.normalizer import CANONICAL_DIM
from rdcontext.embeddings.service import EmbeddingService, get_embedding_service

logger = logging.getLogger(__name__)

SEPARATOR = "-" * 40


def format_snippet(snippet: Snippet, similarity: Optional[float] = None) -> str:
    lines = [
        f"TITLE: {snippet.title}",
        f"DESCRIPTION: {snippet.description}",
        f"LANGUAGE: {snippet.language or ''}",
        f"PROVIDER: {snippet.provider} ({snippet.embedding_dims}d)",
    ]
    if similarity is not None:
        lines.append(f"SIMILARITY: {similarity * 100:.1f}%")
    lines.append("CODE:")
    lines.append(f"```{snippet.language or ''}")
    lines.append(snippet.code)
    lines.append("```")
    return "\n".join(lines)


def format_results(results: list[Union[Snippet, SnippetMatch]]) -> str:
    blocks = []
    for item in results:
        if isinstance(item, SnippetMatch):
            blocks.append(format_snippet(item.snippet, item.similarity))
        else:
            blocks.append(format_snippet(item))
    return f"\n{SEPARATOR}\n".join(blocks)


async def search(
    name: str,
    topic: Optional[str],
    k: int,
    storage: Storage,
    embeddings: Optional[EmbeddingService],
    cross_provider: bool = False,
) -> list[Union[Snippet, SnippetMatch]]:
    """Rank by *topic* when given, otherwise list in storage order."""
    if not topic:
        return storage.snippets.get_all_snippets(name, k)
    if embeddings is None:
        raise RuntimeError("Embedding service not available")

    query = await embeddings.embed(topic)
    if cross_provider:
        return storage.snippets.cross_provider_search(name, query.vector, query.provider, k)
    return storage.snippets.similarity_search(name, query.vector, query.provider, k)


async def get(
    name: str,
    topic: Optional[str] = None,
    k: int = 10,
    cross_provider: bool = False,
    storage: Optional[Storage] = None,
    embeddings: Optional[EmbeddingService] = None,
) -> str:
    """Formatted snippets for *name*, or a message explaining why not."""
    name = name.lower()
    try:
        storage = storage or get_storage()
        embeddings = embeddings or get_embedding_service()
        start = time.monotonic()
        results = await search(name, topic, k, storage, embeddings, cross_provider)
        elapsed_ms = (time.monotonic() - start) * 1000
    except Exception as exc:
        logger.exception("[get] Search failed: %s", exc)
        return f"Failed to retrieve snippets: {exc}"

    if not results:
        logger.info("[get] Query completed in %.0fms - no results", elapsed_ms)
        message = f'No snippets found for library "{name}"'
        if topic:
            message += f' with topic: "{topic}"'
        return message

    logger.info(
        "[get] Query completed in %.0fms: %d snippets (%s search)",
        elapsed_ms, len(results), "cross-provider" if cross_provider else "provider-specific",
    )
    return format_results(results)


async def get_with_stats(
    name: str,
    topic: Optional[str] = None,
    k: int = 10,
    cross_provider: bool = False,
    storage: Optional[Storage] = None,
    embeddings: Optional[EmbeddingService] = None,
) -> dict:
    """``get`` plus library statistics and the search configuration."""
    storage = storage or get_storage()
    embeddings = embeddings or get_embedding_service()
    results = await get(name, topic, k, cross_provider, storage, embeddings)
    stats = storage.snippets.get_library_stats(name.lower())
    return {
        "results": results,
        "stats": stats.to_dict(),
        "search_config": {
            "provider": embeddings.provider.value if embeddings else None,
            "cross_provider": cross_provider,
            "normalized_dimensions": CANONICAL_DIM,
        },
    }


def health(storage: Optional[Storage] = None) -> dict:
    """Snippet-store health report."""
    storage = storage or get_storage()
    report = storage.snippets.health_check()
    logger.info(
        "[health] status=%s metadata=%s vectors=%s elapsed=%.1fms",
        report["status"], report["metadata"], report["vectors"], report["elapsed_ms"],
    )
    return report
