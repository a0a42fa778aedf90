"""Exception hierarchy for the audit pipeline."""

from __future__ import annotations

from typing import Optional


class AuditError(Exception):
    """Base class for every error raised by the audit package."""


class ConfigurationError(AuditError, ValueError):
    """Invalid settings detected before any remote call is made."""


class RemoteFetchError(AuditError):
    """A call to the remote directory failed."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class PaginationError(RemoteFetchError):
    """A listing page could not be fetched. Fatal to the whole run."""

    def __init__(self, page_index: int, cause: BaseException) -> None:
        super().__init__(f"Listing page {page_index} failed: {cause}", cause)
        self.page_index = page_index


class PerItemFetchError(RemoteFetchError):
    """A single follow-up fetch failed. Recorded, never raised by the pipeline."""

    def __init__(self, principal: str, cause: BaseException) -> None:
        super().__init__(f"Group fetch for {principal} failed: {cause}", cause)
        self.principal = principal


class PoolAborted(AuditError):
    """Placeholder result for items never admitted because the pool was stopped."""
