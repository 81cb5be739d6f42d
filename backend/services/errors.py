"""Error types shared by the service layer.

Every error carries the HTTP status the API boundary reports it with, so
request handlers can translate them into ``{"error": message}`` payloads
without knowing which component raised them.
"""
from typing import Optional


class RAGServiceError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(RAGServiceError):
    """Malformed or missing request fields."""

    status_code = 400


class DuplicateIdError(RAGServiceError):
    """The same chunk id appears more than once in one upload batch."""

    status_code = 400

    def __init__(self, chunk_id: str):
        super().__init__(f"Duplicate chunk id found in upload batch: {chunk_id}")
        self.chunk_id = chunk_id


class NotFoundError(RAGServiceError):
    """Requested ids resolve to no stored chunks."""

    status_code = 404


class UpstreamUnavailable(RAGServiceError):
    """A remote client was never initialized (missing credential)."""

    status_code = 503


class EmbeddingUnavailable(UpstreamUnavailable):
    """Embedding client is not configured or returned no vector."""

    # Search and upload report embedding failures as internal errors
    status_code = 500


class GenerationUnavailable(UpstreamUnavailable):
    """Generation client is not configured."""


class UpstreamFailure(RAGServiceError):
    """A remote call raised."""

    status_code = 500
