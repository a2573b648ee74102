"""Error taxonomy shared across rdcontext.

Per-item failures (one file, one snippet) are caught and logged where they
happen; these exceptions are what propagates when a whole operation cannot
proceed.
"""


class RdContextError(Exception):
    """Base exception for rdcontext errors."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class EmptyInputError(RdContextError):
    """Raised when blank text is passed to the embedding service."""
    def __init__(self, message: str = "Input cannot be empty"):
        super().__init__(message)


class UnknownProviderError(RdContextError):
    """Raised when a provider name is not one of the supported providers."""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unsupported provider: {name}")


class UnsupportedEmbeddingDimensionError(RdContextError):
    """Raised when the normalizer does not recognise a provider/width pair."""
    def __init__(self, provider: str, width: int):
        self.provider = provider
        self.width = width
        super().__init__(
            f"Unsupported embedding: {provider} with {width} dimensions"
        )


class DimensionMismatchError(RdContextError):
    """Raised when two vectors of different widths are compared."""
    def __init__(self, left: int, right: int):
        self.left = left
        self.right = right
        super().__init__(f"Dimension mismatch: {left} vs {right}")


class MissingApiKeyError(RdContextError):
    """Raised when the credential for the chosen provider is absent.

    Never retried: the caller has to fix its configuration first.
    """
    def __init__(self, provider: str, env_var: str):
        self.provider = provider
        self.env_var = env_var
        super().__init__(
            f"{env_var} is required for the {provider} provider"
        )


class InvalidLibraryNameError(RdContextError):
    """Raised when a library name is not in ``owner/repo`` format."""
    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"Library name must be in format owner/repo, got {name!r}"
        )
