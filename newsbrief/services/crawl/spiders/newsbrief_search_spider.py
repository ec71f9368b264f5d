"""EMM NewsBrief advanced-search spider.

The portal renders each hit as a ``div.articlebox_big`` directly under
``<body>``. Inside a block every field lives in an optional child element:

    div.articlebox_big[.duplicate_article]
      p.center_story.center_headline_top > a.headline_link[href][lang]
      p.center_headline_source > a (source name), img[alt="Source country"]
      p.center_leadin[lang]
      div.alert_more > p.center_also "Entities: ..." / "Other categories: ..."

Pagination lives in two hidden inputs, ``page_count`` (a status code, see
PageStatus) and ``current_page``.

Extraction never raises for markup that does not match: a missing element or
an unexpected attribute yields ``None`` for that field only.
"""

from __future__ import annotations

import logging
import re
import urllib.parse
from typing import Callable, Dict, Iterator, List, Optional, Tuple, TypeVar

import httpx
from selectolax.parser import HTMLParser, Node

from ..base import ArticleRecord, CategoryRecord, EntityRecord, PageResult, Spider
from ..errors import FetchError
from newsbrief.models.search import SearchQuery
from newsbrief.settings import DEFAULT_BASE_URL

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FLAG_RE = re.compile(r"/NewsBrief/web/flags/small/([A-Z]+)\.gif")
_ENTITY_RE = re.compile(r"/NewsBrief/entityedition/[a-zA-Z0-9]+/([0-9]+)\.html")
_CATEGORY_RE = re.compile(r"/NewsBrief/alertedition/[a-zA-Z0-9]+/(.+)\.html")

ENTITIES_LABEL = "Entities:"
CATEGORIES_LABEL = "Other categories:"


# --- Tree helpers ---
def _classes(node: Node) -> List[str]:
    return (node.attributes.get("class") or "").split()


def _matches(node: Node, tag: str, classes: Tuple[str, ...], attrs: Dict[str, str]) -> bool:
    if node.tag != tag:
        return False
    node_classes = _classes(node)
    if any(c not in node_classes for c in classes):
        return False
    return all(node.attributes.get(k) == v for k, v in attrs.items())


def _children(node: Optional[Node], tag: str, *classes: str, **attrs: str) -> List[Node]:
    """Direct element children of ``node`` with the given tag, classes and attributes."""
    if node is None:
        return []
    return [c for c in node.iter(include_text=False) if _matches(c, tag, classes, attrs)]


def _child(node: Optional[Node], tag: str, *classes: str, **attrs: str) -> Optional[Node]:
    found = _children(node, tag, *classes, **attrs)
    return found[0] if found else None


def _attr(node: Optional[Node], name: str) -> Optional[str]:
    if node is None:
        return None
    return node.attributes.get(name)


def _text(node: Optional[Node]) -> Optional[str]:
    if node is None:
        return None
    return node.text(deep=True).strip()


def _match_group(pattern: re.Pattern, value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    m = pattern.search(value)
    return m.group(1) if m else None


def _to_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _safe(step: Callable[[], T], field_name: str, default: T = None) -> T:
    # A mismatch in one field must not take the rest of the block down.
    try:
        return step()
    except (AttributeError, TypeError, ValueError, KeyError) as exc:
        logger.debug("Could not extract %s: %s", field_name, exc)
        return default


class NewsBriefSearchSpider(Spider):
    name = "newsbrief_search"

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 20.0,
        headers: Optional[Dict[str, str]] = None,
        http_get: Optional[Callable[[str], str]] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = float(timeout)
        self.headers = headers or {"User-Agent": "NewsBrief-Crawler/0.1"}
        # Injectable getter (url -> html) for tests and offline runs
        self.http_get = http_get
        self.transport = transport

    # --- Public API ---
    def page_url(self, query: SearchQuery, page: int) -> str:
        """URL of one page of an advanced article search."""
        params = [
            ("language", query.page_language),
            ("page", str(page)),
            ("edition", "searcharticles"),
            ("option", "advanced"),
            ("dateFrom", query.date_from.isoformat()),
            ("dateTo", query.date_to.isoformat()),
            ("lang", query.language),
        ]
        return f"{self.base_url}?{urllib.parse.urlencode(params)}"

    def fetch(self, query: SearchQuery, page: int = 1) -> HTMLParser:
        """Fetch and parse one page of the search."""
        return self.fetch_document(self.page_url(query, page))

    def fetch_document(self, url: str) -> HTMLParser:
        html = self.http_get(url) if self.http_get else self._get(url)
        return self.load_document(html, source=url)

    @staticmethod
    def load_document(html: Optional[str], *, source: str) -> HTMLParser:
        if not html or not html.strip():
            raise FetchError(f"Empty document from {source}", context=source)
        return HTMLParser(html)

    def parse_html(self, html: str) -> PageResult:
        return self.parse_document(HTMLParser(html))

    def parse_document(self, doc: HTMLParser) -> PageResult:
        """Extract articles, entity tags and category tags from one result page."""
        result = PageResult()
        for block in self._article_blocks(doc):
            article, entity_ids, category_codes = self._parse_block(block)
            result.articles.append(article)
            if article.url is None:
                continue
            result.entities.extend(EntityRecord(url=article.url, entity_id=e) for e in entity_ids)
            result.categories.extend(CategoryRecord(url=article.url, category_code=c) for c in category_codes)
        return result

    @staticmethod
    def read_pagination(doc: HTMLParser) -> Tuple[Optional[int], Optional[int]]:
        """Return (status_code, current_page) from the hidden inputs; None when unreadable."""
        status = _safe(lambda: _to_int(_attr(doc.css_first('input[name="page_count"]'), "value")), "page_count")
        current = _safe(lambda: _to_int(_attr(doc.css_first('input[name="current_page"]'), "value")), "current_page")
        return status, current

    # --- Internals ---
    def _get(self, url: str) -> str:
        try:
            with httpx.Client(
                timeout=self.timeout,
                headers=self.headers,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                r = client.get(url)
                r.raise_for_status()
                return r.text
        except httpx.HTTPStatusError as exc:
            raise FetchError(f"HTTP {exc.response.status_code} for {url}", context=url) from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"Request to {url} failed: {exc}", context=url) from exc

    @staticmethod
    def _article_blocks(doc: HTMLParser) -> List[Node]:
        return _children(doc.body, "div", "articlebox_big")

    def _parse_block(self, block: Node) -> Tuple[ArticleRecord, List[int], List[str]]:
        headline = _safe(
            lambda: _child(_child(block, "p", "center_story", "center_headline_top"), "a", "headline_link"),
            "headline link",
        )
        source = _safe(lambda: _child(block, "p", "center_headline_source"), "source paragraph")
        leadin = _safe(lambda: _child(block, "p", "center_leadin"), "leadin paragraph")
        more = _safe(lambda: _child(block, "div", "alert_more"), "more-info box")

        article = ArticleRecord(
            source_name=_safe(lambda: _text(_child(source, "a")), "source name"),
            source_country=_safe(
                lambda: _match_group(_FLAG_RE, _attr(_child(source, "img", alt="Source country"), "src")),
                "source country",
            ),
            is_duplicate=_safe(lambda: "duplicate_article" in _classes(block), "duplicate flag", False),
            url=_safe(lambda: _attr(headline, "href"), "url"),
            url_language=_safe(lambda: _attr(headline, "lang"), "url language"),
            leadin=_safe(lambda: _text(leadin), "leadin"),
            leadin_language=_safe(lambda: _attr(leadin, "lang"), "leadin language"),
        )
        entity_ids = _safe(lambda: self._entity_ids(more), "entities", [])
        category_codes = _safe(lambda: self._category_codes(more), "categories", [])
        return article, entity_ids, category_codes

    @staticmethod
    def _labelled_links(more: Optional[Node], label: str, href_prefix: str) -> Iterator[str]:
        for para in _children(more, "p", "center_also"):
            if not (_text(para) or "").startswith(label):
                continue
            for link in _children(para, "a"):
                href = _attr(link, "href") or ""
                if href.startswith(href_prefix):
                    yield href
            return

    def _entity_ids(self, more: Optional[Node]) -> List[int]:
        ids: List[int] = []
        for href in self._labelled_links(more, ENTITIES_LABEL, "/NewsBrief/entityedition"):
            entity_id = _to_int(_match_group(_ENTITY_RE, href))
            if entity_id is not None:
                ids.append(entity_id)
        return ids

    def _category_codes(self, more: Optional[Node]) -> List[str]:
        codes: List[str] = []
        for href in self._labelled_links(more, CATEGORIES_LABEL, "/NewsBrief/alertedition"):
            code = _match_group(_CATEGORY_RE, href)
            if code is not None:
                codes.append(code)
        return codes
