"""Error taxonomy for sync runs.

Only CatalogReadError fails a run. Everything else is caught at the source
or entry it belongs to and recorded in the run summary.
"""

from typing import Optional


class FeedSyncError(Exception):
    """Base class for all feedsync errors."""


class CatalogReadError(FeedSyncError):
    """The source list could not be read."""


class FetchError(FeedSyncError):
    """A feed was unreachable or answered with a non-success status."""

    def __init__(self, url: str, status: Optional[int] = None, cause: Optional[BaseException] = None):
        self.url = url
        self.status = status
        self.cause = cause
        if status is not None:
            detail = f"HTTP {status}"
        else:
            detail = f"{type(cause).__name__}: {cause}" if cause else "unknown error"
        super().__init__(f"{detail} fetching {url}")

    @property
    def retryable(self) -> bool:
        """Network failures, 429 and 5xx are worth another attempt."""
        if self.status is None:
            return True
        return self.status == 429 or self.status >= 500


class ParseError(FeedSyncError):
    """Feed content is not well-formed feed markup."""


class InsertError(FeedSyncError):
    """The store rejected a write."""


class EmbeddingError(FeedSyncError):
    """The embedding call failed, or its result could not be stored."""

    def __init__(self, message: str, status: Optional[int] = None, retryable: bool = False):
        self.status = status
        self.message = message
        self.retryable = retryable
        super().__init__(f"HTTP {status}: {message}" if status else message)
