"""rdcontext embedding layer.

Provides the canonical-space normalizer, a provider abstraction with
OpenAI and Gemini implementations, and the EmbeddingService used by the
ingestion pipeline and the retrieval handlers.
"""
from .normalizer import (
    CANONICAL_DIM,
    EmbeddingNormalizer,
    EmbeddingProviderName,
    cosine_similarity,
    normalize,
)
from .provider import EmbeddingProvider
from .openai_provider import OpenAIEmbeddingProvider
from .gemini import GeminiEmbeddingProvider
from .service import (
    EmbeddingResult,
    EmbeddingService,
    create_embedding_provider,
    get_embedding_service,
    set_embedding_service,
)

__all__ = [
    "CANONICAL_DIM",
    "EmbeddingNormalizer",
    "EmbeddingProviderName",
    "cosine_similarity",
    "normalize",
    "EmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "GeminiEmbeddingProvider",
    "EmbeddingResult",
    "EmbeddingService",
    "create_embedding_provider",
    "get_embedding_service",
    "set_embedding_service",
]
