from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from selectolax.parser import HTMLParser

from newsbrief.models.search import SearchQuery
from newsbrief.settings import DEFAULT_MAX_PAGES

from .base import PageResult, PageStatus, PaginationState
from .errors import PageStateError
from .spiders.newsbrief_search_spider import NewsBriefSearchSpider

logger = logging.getLogger(__name__)

# (result, page, status) -> written paths
Emitter = Callable[[PageResult, int, int], List[str]]


@dataclass
class CrawlSummary:
    pages_emitted: int = 0
    last_page: Optional[int] = None
    last_status: Optional[int] = None
    no_results: bool = False
    files: List[str] = field(default_factory=list)


def _read_state(doc: HTMLParser, page: int, previous: Optional[PaginationState] = None) -> PaginationState:
    status, current = NewsBriefSearchSpider.read_pagination(doc)
    if status is None or current is None:
        raise PageStateError(
            f"Result page {page} has no readable page_count/current_page "
            f"(page_count={status!r}, current_page={current!r})",
            context=page,
        )
    if previous is None:
        return PaginationState(current_page=current, status_code=status)
    return previous.advance(current, status)


def crawl_search(
    query: SearchQuery,
    *,
    spider: NewsBriefSearchSpider,
    emit: Emitter,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> CrawlSummary:
    """Fetch, extract and emit result pages until the portal reports no more.

    The first page is emitted whatever its status (except NO_RESULTS); later
    pages are fetched only while the previous one reported MORE_PAGES and its
    page number is within ``max_pages``. The page number is always taken from
    the fetched document, not from the request. Errors from fetch or emit
    propagate and end the run; pages emitted before stay written.
    """
    summary = CrawlSummary()

    doc = spider.fetch(query, 1)
    state = _read_state(doc, 1)

    if state.status_code == PageStatus.NO_RESULTS:
        logger.warning("No search results for %s (language=%s)", query.date_block, query.language)
        summary.no_results = True
        summary.last_status = state.status_code
        return summary

    state = _emit(spider, doc, state, emit, summary)

    while state.has_more and state.current_page <= max_pages and state.pages_emitted <= max_pages:
        requested = state.current_page + 1
        logger.info("Fetching page %d", requested)
        doc = spider.fetch(query, requested)
        state = _read_state(doc, requested, previous=state)
        state = _emit(spider, doc, state, emit, summary)

    if state.has_more:
        logger.warning("Stopped at page %d: page bound %d reached", state.current_page, max_pages)
    logger.info("Crawl finished after %d page(s), last status %d", state.pages_emitted, state.status_code)
    return summary


def _emit(
    spider: NewsBriefSearchSpider,
    doc: HTMLParser,
    state: PaginationState,
    emit: Emitter,
    summary: CrawlSummary,
) -> PaginationState:
    if state.status_code == PageStatus.PAST_LAST_PAGE:
        logger.warning("Page %d is past the last result page; emitting it flagged", state.current_page)
    result = spider.parse_document(doc)
    summary.files.extend(emit(result, state.current_page, state.status_code))
    state = state.emitted()
    summary.pages_emitted = state.pages_emitted
    summary.last_page = state.current_page
    summary.last_status = state.status_code
    return state
