"""Error taxonomy for scrape runs.

Start-of-run errors (query, documents, checkpoint) are raised before anything
is written. ``HandlerFailure`` stops a run after the last fully persisted item,
so rerunning the command retries the failing item.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple


class ScraperError(Exception):
    """Base class for every error the scraper reports to the caller."""


class QuerySyntaxError(ScraperError, ValueError):
    """The query could not be parsed. ``position`` is the column, when known."""

    def __init__(self, query: str, position: Optional[int], reason: str) -> None:
        self.query = query
        self.position = position
        self.reason = reason
        where = "" if position is None else f" at position {position}"
        super().__init__(f"Invalid query {query!r}{where}: {reason}")


class SourceUnreadableError(ScraperError):
    pass


class MalformedDocumentError(ScraperError):
    pass


class CorruptCheckpointError(ScraperError):
    pass


class StaleLocationError(ScraperError):
    """A selected location no longer exists in the in-memory document."""


class HandlerLoadError(ScraperError):
    pass


class HandlerFailure(ScraperError):
    """The per-item handler raised, or produced a result that cannot be merged."""

    def __init__(
        self,
        message: str,
        index: Optional[int] = None,
        location: Optional[Tuple[Any, ...]] = None,
    ) -> None:
        self.index = index
        self.location = location
        super().__init__(message)


class ResultShapeError(HandlerFailure):
    pass


__all__ = [
    "ScraperError",
    "QuerySyntaxError",
    "SourceUnreadableError",
    "MalformedDocumentError",
    "CorruptCheckpointError",
    "StaleLocationError",
    "HandlerLoadError",
    "HandlerFailure",
    "ResultShapeError",
]
