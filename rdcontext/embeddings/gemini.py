"""Gemini embedding provider (REST, via httpx).

Calls ``models/{model}:batchEmbedContents`` on the Generative Language API.

Request body
------------
::

    {
        "requests": [
            {"model": "models/text-embedding-004",
             "content": {"parts": [{"text": "..."}]}}
        ]
    }

Response body (single and batch shapes are both handled)
---------------------------------------------------------
::

    { "embeddings": [ {"values": [...]}, ... ] }
    { "embedding":  {"values": [...]} }
"""
import logging
from typing import Any, Optional

import httpx

from rdcontext.errors import MissingApiKeyError

from .normalizer import EmbeddingProviderName
from .provider import EmbeddingProvider

logger = logging.getLogger(__name__)

API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL_ID = "text-embedding-004"
DEFAULT_TIMEOUT = 30.0


def parse_embedding_response(data: dict[str, Any]) -> list[list[float]]:
    """Extract vectors from a Gemini embedding response body.

    Raises:
        ValueError: If none of the known shapes match.
    """
    embeddings = data.get("embeddings")
    if isinstance(embeddings, list):
        return [list(item["values"]) for item in embeddings]

    single = data.get("embedding")
    if isinstance(single, dict) and "values" in single:
        return [list(single["values"])]
    if isinstance(single, list):
        return [list(single)]

    raise ValueError(
        f"Unexpected embedding response structure, keys: {list(data.keys())}"
    )


class GeminiEmbeddingProvider(EmbeddingProvider):
    """Embedding provider backed by Google's Generative Language API.

    Args:
        api_key:  Gemini API key.  ``None`` → ``MissingApiKeyError`` on first use.
        model_id: Embedding model name (without the ``models/`` prefix).
        client:   Optional pre-built ``httpx.AsyncClient`` (tests inject one).
    """

    def __init__(
        self,
        api_key: Optional[str],
        model_id: str = DEFAULT_MODEL_ID,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._api_key = api_key
        self._model_id = model_id
        self._client = client

    @property
    def name(self) -> EmbeddingProviderName:
        return EmbeddingProviderName.GEMINI

    @property
    def model_id(self) -> str:
        return self._model_id

    def _get_client(self) -> httpx.AsyncClient:
        if not self._api_key:
            raise MissingApiKeyError("gemini", "GEMINI_API_KEY")
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=API_BASE, timeout=DEFAULT_TIMEOUT)
        return self._client

    async def embed(self, texts: list[str]) -> list[list[float]]:
        client = self._get_client()
        model = f"models/{self._model_id}"
        body = {
            "requests": [
                {"model": model, "content": {"parts": [{"text": text}]}}
                for text in texts
            ]
        }
        logger.debug(
            "[embeddings/gemini] requesting model=%s texts=%d",
            self._model_id, len(texts),
        )
        try:
            resp = await client.post(
                f"{API_BASE}/{model}:batchEmbedContents",
                headers={"x-goog-api-key": self._api_key},
                json=body,
            )
            resp.raise_for_status()
            vectors = parse_embedding_response(resp.json())
        except httpx.HTTPError as exc:
            raise RuntimeError(f"Failed to generate embedding: {exc}") from exc

        if len(vectors) != len(texts):
            raise ValueError(
                f"Provider returned {len(vectors)} vectors for {len(texts)} texts"
            )
        return vectors

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
