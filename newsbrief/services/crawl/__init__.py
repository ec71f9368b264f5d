"""NewsBrief search-results crawler.

Structure:
- base.py: record types, pagination state and the spider contract
- errors.py: fatal error kinds raised by fetch/write/pagination steps
- spiders/: page fetching and article-block extraction
- pagination.py: fetch -> extract -> emit loop driven by the page status code
- pipeline.py: gzip CSV writer and output file naming
- runner.py: CLI entrypoint for manual and scheduled runs

Fetching uses httpx, parsing uses selectolax; everything runs sequentially,
one page at a time.
"""

__all__ = [
    "base",
    "errors",
    "pagination",
    "pipeline",
]
