"""Error types raised by the indexing and search core."""


class VectorSearchError(Exception):
    """Base class for all vector search errors."""
    pass


class ProviderUnavailable(VectorSearchError):
    """Raised when the embedding provider cannot be reached or answers badly."""
    pass


class ProviderMisconfigured(VectorSearchError):
    """Raised when the embedding provider is missing its URL or API key."""
    pass


class VectorSearchDisabled(VectorSearchError):
    """Raised when embeddings are requested while vector search is switched off."""
    pass


class InvalidInput(VectorSearchError):
    """Raised for unusable caller input, e.g. an empty query."""
    pass


class DimensionMismatch(InvalidInput):
    """Raised when a vector does not have the configured dimension."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Embedding has {actual} dimensions, expected {expected}"
        )


class StorageUnavailable(VectorSearchError):
    """Raised when the embeddings table or database connection is unusable."""
    pass
