"""
Readly exceptions.
"""


class ReadlyError(Exception):
    """Base exception for Readly errors."""

    def __init__(self, message: str, code: int | None = None):
        self.message = message
        self.code = code
        super().__init__(self.message)


class ChunkingInputError(ReadlyError):
    """Raised when source text cannot be chunked.

    The chunker recovers from this by returning no chunks.
    """

    def __init__(self, message: str = "Invalid source text"):
        super().__init__(message, code=1001)


class EmbeddingProviderError(ReadlyError):
    """Raised when the embedding provider fails (network, quota, rate limit)."""

    def __init__(self, message: str, batch_index: int | None = None):
        self.batch_index = batch_index
        if batch_index is not None:
            message = f"Batch {batch_index} failed: {message}"
        super().__init__(message, code=1002)


class MalformedCitationMarker(ReadlyError):
    """Raised when a citation marker cannot be parsed.

    The citation extractor recovers from this by stripping the marker.
    """

    def __init__(self, marker: str, reason: str):
        self.marker = marker
        super().__init__(f"Malformed citation marker {marker!r}: {reason}", code=1003)
