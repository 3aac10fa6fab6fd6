"""
Error taxonomy for content search.

Storage-scope errors (AccessError, ListingError) abort a search.
Object-scope errors (FetchError) are isolated to one object and turned
into a non-match by the coordinator.
"""

from typing import Optional


class SearchError(Exception):
    """Base class for search errors."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class ValidationError(SearchError, ValueError):
    """Malformed search request, rejected before any storage access."""


class AccessError(SearchError):
    """Bucket does not exist or is not reachable with the current credentials."""


class ListingError(SearchError):
    """Object listing failed part way through pagination."""


class FetchError(SearchError):
    """A single object could not be downloaded completely."""

    def __init__(self, key: str, message: str, error_code: Optional[str] = None):
        self.key = key
        super().__init__(message, error_code)


class SearchCancelled(SearchError):
    """The search's cancellation token fired."""

    def __init__(self, message: str = "Search cancelled"):
        super().__init__(message)
