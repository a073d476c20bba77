"""
Error taxonomy for the context retrieval backend.

Every error carries the HTTP status the API layer should answer with.
Errors on the critical path (embed, retrieve, rank) propagate to the caller;
errors on side-effect paths (cache writes, metrics) are caught where they
happen and only logged.
"""

from typing import Optional


class ContextServiceError(Exception):
    """Base class for errors surfaced by the backend."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InputError(ContextServiceError):
    """Empty or missing query, malformed body. Never retried."""

    status_code = 400


class UpstreamError(ContextServiceError):
    """A remote AI or search service answered with a failure."""

    status_code = 502

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        upstream_status: Optional[int] = None,
    ):
        super().__init__(message, status_code)
        self.upstream_status = upstream_status


class UpstreamAuthError(UpstreamError):
    """Credential rejected by the remote service (401/403). Never retried."""

    status_code = 401


class UpstreamTransientError(UpstreamError):
    """429, 5xx or network failure. Retried by the bounded retry policy."""

    status_code = 503


class EmbeddingServiceError(UpstreamError):
    """Embedding call failed or returned a malformed payload."""


class EmbeddingAuthError(EmbeddingServiceError, UpstreamAuthError):
    """Embedding credential rejected."""


class EmbeddingTransientError(EmbeddingServiceError, UpstreamTransientError):
    """Embedding service rate limited, unavailable or unreachable."""


class StorageError(ContextServiceError):
    """Reading or writing chunks, documents or cache rows failed."""

    status_code = 500


class MetricsError(ContextServiceError):
    """Writing performance or quality metrics failed. Never surfaced."""


def is_transient_error(error: BaseException) -> bool:
    """Retry predicate: only rate limits, 5xx and network failures qualify."""
    return isinstance(error, UpstreamTransientError)


def status_for_upstream(upstream_status: Optional[int]) -> int:
    """Map an upstream HTTP status onto the status returned to our caller.

    Client errors (4xx, including auth failures and rate limits) keep their
    status; server errors become 502 and a missing status (network failure)
    becomes 503.
    """
    if upstream_status is None:
        return 503
    if 400 <= upstream_status < 500:
        return upstream_status
    return 502
