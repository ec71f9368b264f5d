from __future__ import annotations

import csv
import gzip
import logging
import os
from typing import Any, Dict, Iterable, List, Optional

from newsbrief.models.search import SearchQuery

from .base import ARTICLE_COLUMNS, CATEGORY_COLUMNS, ENTITY_COLUMNS, PageResult, PageStatus, Spider
from .errors import WriteError

logger = logging.getLogger(__name__)

RECORD_TYPES = ("articles", "entities", "categories")


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def output_path(out_dir: str, record_type: str, query: SearchQuery, page: int, *, past_last: bool = False) -> str:
    """Destination of one table of one page: ``<type>-<language>-<dates>-<page>.csv.gz``.

    Pages read past the last result page get a ``-past_last`` suffix so that
    downstream consumers can skip them.
    """
    if record_type not in RECORD_TYPES:
        raise ValueError(f"Unknown record type: {record_type}")
    suffix = "-past_last" if past_last else ""
    name = f"{record_type}-{query.language}-{query.date_block}-{page}{suffix}.csv.gz"
    return os.path.join(out_dir, name)


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def write_csv_gz(rows: Iterable[Dict[str, Any]], path: str, columns: List[str]) -> str:
    """Write rows to a gzip-compressed CSV file; the header is written even for no rows.

    Existing files are overwritten. Returns the path.
    """
    try:
        ensure_dir(os.path.dirname(path) or ".")
        with gzip.open(path, "wt", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
            writer.writeheader()
            for row in rows:
                writer.writerow({k: _cell(row.get(k)) for k in columns})
    except OSError as exc:
        raise WriteError(f"Could not write {path}: {exc}", context=path) from exc
    return path


def write_page(
    result: PageResult,
    *,
    out_dir: str,
    query: SearchQuery,
    page: int,
    status: Optional[int] = None,
) -> List[str]:
    """Write the three tables of one page and return the written paths."""
    past_last = status == PageStatus.PAST_LAST_PAGE
    tables = (
        ("articles", result.articles, ARTICLE_COLUMNS),
        ("entities", result.entities, ENTITY_COLUMNS),
        ("categories", result.categories, CATEGORY_COLUMNS),
    )
    paths: List[str] = []
    for record_type, records, columns in tables:
        path = output_path(out_dir, record_type, query, page, past_last=past_last)
        write_csv_gz(Spider.normalize_records(records), path, columns)
        paths.append(path)
    logger.info(
        "Wrote page %d: %d articles, %d entities, %d categories",
        page,
        len(result.articles),
        len(result.entities),
        len(result.categories),
    )
    return paths
