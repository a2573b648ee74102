"""Abstract EmbeddingProvider interface.

Every embedding back-end (OpenAI, Gemini, …) implements this interface so
the service layer and the ingestion pipeline stay provider-agnostic.
"""
from abc import ABC, abstractmethod

from .normalizer import EmbeddingProviderName


class EmbeddingProvider(ABC):
    """Abstract base class for embedding providers."""

    @property
    @abstractmethod
    def name(self) -> EmbeddingProviderName:
        """Which provider produced the vectors (stored with every snippet)."""

    @property
    @abstractmethod
    def model_id(self) -> str:
        """Provider-internal model identifier (used for logging and summaries)."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Args:
            texts: Non-empty list of non-blank strings to embed.

        Returns:
            A list of float vectors, one per input text, in input order.

        Raises:
            MissingApiKeyError: If the provider has no credential.
            Exception: On provider error (network, auth, quota, …).
        """

    async def aclose(self) -> None:
        """Release network resources.  Default: nothing to release."""
