from __future__ import annotations

import argparse
import logging
import os
from datetime import date
from typing import List, Optional

from pydantic import ValidationError

from newsbrief.models.search import SearchQuery
from newsbrief.settings import CrawlSettings, load_settings

from .base import PageResult, PageStatus
from .errors import ConfigurationError, CrawlError
from .pagination import CrawlSummary, crawl_search
from .pipeline import write_page
from .spiders.newsbrief_search_spider import NewsBriefSearchSpider

logger = logging.getLogger(__name__)


def build_spider(settings: CrawlSettings, *, timeout: Optional[float] = None) -> NewsBriefSearchSpider:
    return NewsBriefSearchSpider(
        base_url=settings.base_url,
        timeout=settings.timeout if timeout is None else timeout,
        headers={"User-Agent": settings.user_agent},
    )


def build_query(args: argparse.Namespace) -> SearchQuery:
    try:
        return SearchQuery(
            date_from=args.date,
            date_to=args.date_to,
            language=args.language,
            page_language=args.page_language,
        )
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid search query: {exc}") from exc


def run_search(
    query: SearchQuery,
    *,
    out_dir: str,
    max_pages: int,
    spider: NewsBriefSearchSpider,
) -> CrawlSummary:
    def emit(result: PageResult, page: int, status: int) -> List[str]:
        return write_page(result, out_dir=out_dir, query=query, page=page, status=status)

    return crawl_search(query, spider=spider, emit=emit, max_pages=max_pages)


def run_parse_file(
    path: str,
    query: SearchQuery,
    *,
    out_dir: str,
    spider: NewsBriefSearchSpider,
) -> List[str]:
    """Extract a saved result page and write its tables; page index from the page itself."""
    with open(path, "r", encoding="utf-8") as f:
        html = f.read()
    doc = spider.load_document(html, source=path)
    status, current = spider.read_pagination(doc)
    if status == PageStatus.NO_RESULTS:
        logger.warning("No search results in %s", path)
        return []
    return write_page(
        spider.parse_document(doc),
        out_dir=out_dir,
        query=query,
        page=current or 1,
        status=status,
    )


def _setup_logging(level_name: str, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _add_query_arguments(parser: argparse.ArgumentParser, settings: CrawlSettings) -> None:
    parser.add_argument("date", type=date.fromisoformat, help="Publication date (YYYY-MM-DD)")
    parser.add_argument("--date-to", type=date.fromisoformat, default=None, help="End of a date range (inclusive)")
    parser.add_argument("--language", default="all", help="Article language filter, e.g. sv (default: all)")
    parser.add_argument("--page-language", default="en", help="Interface language of the portal (default: en)")
    parser.add_argument("--out-dir", default=settings.out_dir, help="Output directory for the .csv.gz files")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")


def main(argv: Optional[list] = None) -> int:
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        logging.basicConfig(level=logging.INFO)
        logger.error("%s", exc)
        return 1

    parser = argparse.ArgumentParser(description="Scrape EMM NewsBrief search results to gzip CSV files")
    sub = parser.add_subparsers(dest="cmd", required=True)

    crawl = sub.add_parser("crawl", help="Fetch every result page of a search")
    _add_query_arguments(crawl, settings)
    crawl.add_argument("--max-pages", type=int, default=settings.max_pages, help="Highest page number to follow")
    crawl.add_argument("--timeout", type=float, default=None, help="HTTP timeout in seconds")

    parse = sub.add_parser("parse", help="Extract a saved result page from a local HTML file")
    _add_query_arguments(parse, settings)
    parse.add_argument("--file", required=True, help="Local HTML file path")

    args = parser.parse_args(argv)
    _setup_logging(settings.log_level, args.verbose)

    try:
        query = build_query(args)
        os.makedirs(args.out_dir, exist_ok=True)
        if args.cmd == "crawl":
            if args.max_pages < 1:
                raise ConfigurationError("--max-pages must be at least 1")
            if args.timeout is not None and args.timeout <= 0:
                raise ConfigurationError("--timeout must be greater than 0")
            spider = build_spider(settings, timeout=args.timeout)
            summary = run_search(query, out_dir=args.out_dir, max_pages=args.max_pages, spider=spider)
            for path in summary.files:
                print(path)
            return 0

        if args.cmd == "parse":
            spider = build_spider(settings)
            for path in run_parse_file(args.file, query, out_dir=args.out_dir, spider=spider):
                print(path)
            return 0
    except CrawlError as exc:
        logger.error("%s", exc)
        return 1
    except OSError as exc:
        logger.error("I/O error: %s", exc)
        return 1

    parser.error("unknown command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
