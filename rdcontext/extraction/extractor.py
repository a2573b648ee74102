"""LLM-driven snippet extraction.

Turns one documentation file into a list of described code snippets.  The
model's answer is untrusted: anything that is not a JSON array of objects
with string ``title``/``description``/``language``/``code`` fields is
dropped with a warning, never raised.
"""
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from rdcontext.errors import MissingApiKeyError

from .prompts import get_extraction_prompt

logger = logging.getLogger(__name__)

API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL_ID = "gemini-1.5-pro"
DEFAULT_TIMEOUT = 120.0

_REQUIRED_FIELDS = ("title", "description", "language", "code")


@dataclass
class ExtractedSnippet:
    title: str
    description: str
    language: str
    code: str


def parse_extracted_snippets(text: Optional[str]) -> list[ExtractedSnippet]:
    """Parse a model answer into snippets, silently dropping bad entries."""
    if not text or not text.strip():
        return []
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("[Extractor] Failed to parse response as JSON: %s", exc)
        return []

    if not isinstance(parsed, list):
        logger.warning("[Extractor] Response is not an array")
        return []

    return [
        ExtractedSnippet(**{key: item[key] for key in _REQUIRED_FIELDS})
        for item in parsed
        if isinstance(item, dict)
        and all(isinstance(item.get(key), str) for key in _REQUIRED_FIELDS)
    ]


class SnippetExtractor(ABC):
    """Extracts snippets from one documentation file."""

    @abstractmethod
    async def extract(
        self,
        name: str,
        description: Optional[str],
        path: str,
        content: str,
    ) -> list[ExtractedSnippet]:
        """Return the snippets found in *content* (empty content → ``[]``)."""

    async def aclose(self) -> None:
        """Release network resources.  Default: nothing to release."""


class GeminiSnippetExtractor(SnippetExtractor):
    """Extractor backed by Gemini ``generateContent`` in JSON mode.

    Args:
        api_key:  Gemini API key.
        model_id: Text model name.
        client:   Optional pre-built ``httpx.AsyncClient``.
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
    def model_id(self) -> str:
        return self._model_id

    def _get_client(self) -> httpx.AsyncClient:
        if not self._api_key:
            raise MissingApiKeyError("gemini", "GEMINI_API_KEY")
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)
        return self._client

    async def extract(
        self,
        name: str,
        description: Optional[str],
        path: str,
        content: str,
    ) -> list[ExtractedSnippet]:
        if not content or not content.strip():
            return []

        client = self._get_client()
        body = {
            "contents": [
                {"parts": [{"text": get_extraction_prompt(name, description, path, content)}]}
            ],
            "generationConfig": {
                "temperature": 0,
                "topK": 1,
                "topP": 1,
                "responseMimeType": "application/json",
            },
        }
        resp = await client.post(
            f"{API_BASE}/models/{self._model_id}:generateContent",
            headers={"x-goog-api-key": self._api_key},
            json=body,
        )
        resp.raise_for_status()
        snippets = parse_extracted_snippets(_response_text(resp.json()))
        logger.debug("[Extractor] %s: %d snippets", path, len(snippets))
        return snippets

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _response_text(data: dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))
