"""EmbeddingService — thin orchestration layer over EmbeddingProvider.

Rejects blank input before any network call, tags every vector with the
provider and model that produced it, and offers a normalized variant for
callers that need the canonical width.  A module-level singleton is
initialised by the CLI / API entry points from config.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from rdcontext.config import AppSettings
from rdcontext.errors import EmptyInputError

from .gemini import GeminiEmbeddingProvider
from .normalizer import (
    CANONICAL_DIM,
    EmbeddingNormalizer,
    EmbeddingProviderName,
    recommended_models,
)
from .openai_provider import OpenAIEmbeddingProvider
from .provider import EmbeddingProvider

logger = logging.getLogger(__name__)


@dataclass
class EmbeddingResult:
    """A raw provider vector plus where it came from."""

    vector: list[float]
    provider: EmbeddingProviderName
    model: str

    @property
    def dimensions(self) -> int:
        return len(self.vector)


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_service: Optional["EmbeddingService"] = None


def get_embedding_service() -> Optional["EmbeddingService"]:
    """Return the global EmbeddingService, or None if not yet initialised."""
    return _service


def set_embedding_service(service: Optional["EmbeddingService"]) -> None:
    """Set (or replace) the global EmbeddingService instance."""
    global _service
    _service = service


def create_embedding_provider(settings: AppSettings) -> EmbeddingProvider:
    """Build the provider selected by ``settings.embedding.provider``."""
    emb = settings.embedding
    if emb.provider == EmbeddingProviderName.GEMINI.value:
        return GeminiEmbeddingProvider(
            api_key=settings.secrets.gemini.api_key,
            model_id=emb.gemini_model,
        )
    return OpenAIEmbeddingProvider(
        api_key=settings.secrets.openai.api_key,
        model_id=emb.openai_model,
    )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class EmbeddingService:
    """Validates input and delegates to an EmbeddingProvider.

    Args:
        provider:   Concrete embedding provider to use.
        normalizer: Canonical-space normalizer (default provider table).
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        normalizer: Optional[EmbeddingNormalizer] = None,
    ) -> None:
        self._provider = provider
        self._normalizer = normalizer or EmbeddingNormalizer()

    @property
    def provider(self) -> EmbeddingProviderName:
        return self._provider.name

    @property
    def model_id(self) -> str:
        return self._provider.model_id

    @property
    def normalizer(self) -> EmbeddingNormalizer:
        return self._normalizer

    async def embed(self, text: str) -> EmbeddingResult:
        """Embed one text and return the provider's raw vector.

        Raises:
            EmptyInputError: If ``text`` is empty or whitespace only.
            MissingApiKeyError: If the provider has no credential.
            Exception: On provider-level errors.
        """
        if not text or not text.strip():
            raise EmptyInputError()

        vectors = await self._provider.embed([text])
        vector = vectors[0]
        if not self._normalizer.validate(vector, self.provider):
            logger.warning(
                "[EmbeddingService] Unexpected embedding dimensions: %d for %s",
                len(vector), self.provider.value,
            )
        return EmbeddingResult(vector=vector, provider=self.provider, model=self.model_id)

    async def embed_normalized(self, text: str) -> np.ndarray:
        """Embed one text and return it in the canonical space."""
        result = await self.embed(text)
        return self._normalizer.normalize(result.vector, result.provider)

    def embedding_info(self) -> dict:
        """Describe the active embedding configuration."""
        return {
            "provider": self.provider.value,
            "model": self.model_id,
            "expected_dimensions": list(self._normalizer.expected_dimensions(self.provider)),
            "normalized_dimensions": CANONICAL_DIM,
            "recommendations": recommended_models()[self.provider.value],
        }

    async def aclose(self) -> None:
        await self._provider.aclose()
