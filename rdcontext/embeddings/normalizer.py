"""Cross-provider embedding normalization.

Every stored vector lives in one canonical space of ``CANONICAL_DIM``
float32 components so that OpenAI and Gemini embeddings can be compared
directly.

Normalization rules, by observed width
--------------------------------------
::

    width == 3072  → returned unchanged
    width <  3072  → original values kept as the prefix, right-padded with 0.0
    width >  3072  → prefix-truncated to the first 3072 values (Matryoshka)

Which widths a provider may produce is data (``SUPPORTED_DIMENSIONS``), not
code: adding a provider means adding one entry to the table.  A width the
table does not list raises ``UnsupportedEmbeddingDimensionError``.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Mapping, Sequence, Union

import numpy as np

from rdcontext.errors import (
    DimensionMismatchError,
    UnknownProviderError,
    UnsupportedEmbeddingDimensionError,
)

CANONICAL_DIM = 3072


class EmbeddingProviderName(str, Enum):
    """Closed set of embedding providers."""
    OPENAI = "openai"
    GEMINI = "gemini"


ProviderLike = Union[EmbeddingProviderName, str]
VectorLike = Union[Sequence[float], np.ndarray]

SUPPORTED_DIMENSIONS: dict[EmbeddingProviderName, tuple[int, ...]] = {
    EmbeddingProviderName.OPENAI: (1536, 3072),
    EmbeddingProviderName.GEMINI: (768, 3072),
}

RECOMMENDED_MODELS: dict[EmbeddingProviderName, tuple[str, ...]] = {
    EmbeddingProviderName.OPENAI: (
        "text-embedding-3-small",
        "text-embedding-3-large",
        "text-embedding-ada-002",
    ),
    EmbeddingProviderName.GEMINI: (
        "text-embedding-004",
        "text-embedding-preview-0815",
    ),
}


def coerce_provider(provider: ProviderLike) -> EmbeddingProviderName:
    """Return *provider* as an ``EmbeddingProviderName``."""
    if isinstance(provider, EmbeddingProviderName):
        return provider
    try:
        return EmbeddingProviderName(str(provider).lower())
    except ValueError:
        raise UnknownProviderError(str(provider)) from None


# ---------------------------------------------------------------------------
# Normalizer
# ---------------------------------------------------------------------------

class EmbeddingNormalizer:
    """Maps provider vectors into the canonical space.

    Args:
        supported_dimensions: provider → accepted input widths.
        canonical_dim:        Output width.
    """

    def __init__(
        self,
        supported_dimensions: Mapping[EmbeddingProviderName, Sequence[int]] = SUPPORTED_DIMENSIONS,
        canonical_dim: int = CANONICAL_DIM,
    ) -> None:
        self._supported = {
            coerce_provider(p): tuple(dims) for p, dims in supported_dimensions.items()
        }
        self._canonical_dim = canonical_dim

    @property
    def canonical_dim(self) -> int:
        return self._canonical_dim

    def expected_dimensions(self, provider: ProviderLike) -> tuple[int, ...]:
        return self._supported.get(coerce_provider(provider), ())

    def validate(self, vector: VectorLike, provider: ProviderLike) -> bool:
        return len(vector) in self.expected_dimensions(provider)

    def normalize(self, vector: VectorLike, provider: ProviderLike) -> np.ndarray:
        """Return *vector* as a ``canonical_dim``-wide float32 array.

        Raises:
            UnknownProviderError: If *provider* is not a known provider.
            UnsupportedEmbeddingDimensionError: If the width is not accepted
                for *provider*.
        """
        name = coerce_provider(provider)
        width = len(vector)
        if width not in self._supported.get(name, ()):
            raise UnsupportedEmbeddingDimensionError(name.value, width)

        arr = np.asarray(vector, dtype=np.float32)
        if width == self._canonical_dim:
            return arr.copy()
        if width > self._canonical_dim:
            return arr[: self._canonical_dim].copy()

        out = np.zeros(self._canonical_dim, dtype=np.float32)
        out[:width] = arr
        return out


_default_normalizer = EmbeddingNormalizer()


def normalize(vector: VectorLike, provider: ProviderLike) -> np.ndarray:
    """Normalize with the default provider table."""
    return _default_normalizer.normalize(vector, provider)


def validate_embedding(vector: VectorLike, provider: ProviderLike) -> bool:
    return _default_normalizer.validate(vector, provider)


def expected_dimensions(provider: ProviderLike) -> tuple[int, ...]:
    return _default_normalizer.expected_dimensions(provider)


def recommended_models() -> dict[str, list[str]]:
    return {p.value: list(models) for p, models in RECOMMENDED_MODELS.items()}


# ---------------------------------------------------------------------------
# Similarity
# ---------------------------------------------------------------------------

def cosine_similarity(a: VectorLike, b: VectorLike) -> float:
    """Dot product over the product of magnitudes.

    Returns 0.0 when either vector has zero magnitude.

    Raises:
        DimensionMismatchError: If the vectors differ in length.
    """
    if len(a) != len(b):
        raise DimensionMismatchError(len(a), len(b))

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    magnitude = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if magnitude == 0.0:
        return 0.0
    return float(np.dot(va, vb) / magnitude)


# ---------------------------------------------------------------------------
# Binary quantization
# ---------------------------------------------------------------------------

def quantize_to_binary(vector: VectorLike) -> bytes:
    """Pack one bit per component: 1 when the value is positive.

    Bit ``i`` of the output lives in byte ``i // 8`` at position ``i % 8``.
    """
    bits = np.asarray(vector, dtype=np.float32) > 0
    return np.packbits(bits, bitorder="little").tobytes()


def dequantize_from_binary(data: bytes, length: int) -> np.ndarray:
    """Inverse of ``quantize_to_binary``: each bit becomes +1.0 or -1.0."""
    bits = np.unpackbits(np.frombuffer(data, dtype=np.uint8), bitorder="little")[:length]
    return np.where(bits == 1, 1.0, -1.0).astype(np.float32)


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

@dataclass
class EmbeddingMetadata:
    """Describes how a stored embedding was produced."""

    provider: EmbeddingProviderName
    model: str
    original_dimensions: int
    normalized_dimensions: int = CANONICAL_DIM
    quantized: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def create_embedding_metadata(
    provider: ProviderLike,
    model: str,
    original_dimensions: int,
    quantized: bool = False,
) -> EmbeddingMetadata:
    return EmbeddingMetadata(
        provider=coerce_provider(provider),
        model=model,
        original_dimensions=original_dimensions,
        quantized=quantized,
    )
