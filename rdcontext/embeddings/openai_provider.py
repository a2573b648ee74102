"""OpenAI embedding provider.

Calls ``embeddings.create`` through the official SDK's async client.  The
client is created lazily so that constructing the provider never touches
the network.
"""
import logging
from typing import Optional

from rdcontext.errors import MissingApiKeyError

from .normalizer import EmbeddingProviderName
from .provider import EmbeddingProvider

logger = logging.getLogger(__name__)

DEFAULT_MODEL_ID = "text-embedding-3-small"


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embedding provider backed by the OpenAI API.

    Args:
        api_key:  OpenAI API key.  ``None`` → ``MissingApiKeyError`` on first use.
        model_id: Embedding model name.
    """

    def __init__(self, api_key: Optional[str], model_id: str = DEFAULT_MODEL_ID) -> None:
        self._api_key = api_key
        self._model_id = model_id
        self._client: Optional[object] = None

    @property
    def name(self) -> EmbeddingProviderName:
        return EmbeddingProviderName.OPENAI

    @property
    def model_id(self) -> str:
        return self._model_id

    def _get_client(self) -> object:
        """Return a cached ``openai.AsyncOpenAI`` client."""
        if not self._api_key:
            raise MissingApiKeyError("openai", "OPENAI_API_KEY")
        if self._client is None:
            import openai

            self._client = openai.AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def embed(self, texts: list[str]) -> list[list[float]]:
        client = self._get_client()
        logger.debug(
            "[embeddings/openai] requesting model=%s texts=%d",
            self._model_id, len(texts),
        )
        response = await client.embeddings.create(model=self._model_id, input=texts)
        items = sorted(response.data, key=lambda item: item.index)
        if len(items) != len(texts):
            raise ValueError(
                f"Provider returned {len(items)} vectors for {len(texts)} texts"
            )
        return [list(item.embedding) for item in items]

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
