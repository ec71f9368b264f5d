"""Error kinds for the crawler.

Only fatal conditions are exceptions. Structural mismatches inside an article
block and unparsable numbers are reported as ``None`` values by the extractor
and never show up here.
"""

from typing import Any, Optional


class CrawlError(RuntimeError):
    """Base class for errors that abort a crawl run."""

    def __init__(self, message: str, context: Optional[Any] = None):
        super().__init__(message)
        self.context = context


class FetchError(CrawlError):
    """A result page could not be retrieved (transport error, non-2xx, empty body)."""


class WriteError(CrawlError):
    """An output file could not be written."""


class PageStateError(CrawlError):
    """The page_count/current_page fields are missing or not numeric."""


class ConfigurationError(CrawlError):
    """Settings from the environment or the command line are invalid."""
