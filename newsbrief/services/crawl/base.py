from __future__ import annotations

from dataclasses import dataclass, asdict, field, replace
from enum import IntEnum
from typing import Any, Dict, Iterable, List, Optional


ARTICLE_COLUMNS = [
    "source_name",
    "source_country",
    "is_duplicate",
    "url",
    "url_language",
    "leadin",
    "leadin_language",
]
ENTITY_COLUMNS = ["url", "entity_id"]
CATEGORY_COLUMNS = ["url", "category_code"]


class PageStatus(IntEnum):
    """Values observed in the hidden ``page_count`` input of a result page.

    The portal does not document these; the meanings are inferred.
    """

    NO_RESULTS = 0
    MORE_PAGES = -1
    LAST_PAGE = -2
    PAST_LAST_PAGE = -3


@dataclass
class ArticleRecord:
    source_name: Optional[str]
    source_country: Optional[str]
    is_duplicate: bool
    url: Optional[str]
    url_language: Optional[str]
    leadin: Optional[str]
    leadin_language: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class EntityRecord:
    url: str
    entity_id: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CategoryRecord:
    url: str
    category_code: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PageResult:
    """Everything extracted from one result page.

    Entity and category rows refer to articles of the same page by ``url``;
    the url is only a join key within one page, never across pages.
    """

    articles: List[ArticleRecord] = field(default_factory=list)
    entities: List[EntityRecord] = field(default_factory=list)
    categories: List[CategoryRecord] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.articles or self.entities or self.categories)


@dataclass(frozen=True)
class PaginationState:
    current_page: int
    status_code: int
    pages_emitted: int = 0

    @property
    def has_more(self) -> bool:
        return self.status_code == PageStatus.MORE_PAGES

    def advance(self, current_page: int, status_code: int) -> "PaginationState":
        """Return the state after fetching another page."""
        return replace(self, current_page=current_page, status_code=status_code)

    def emitted(self) -> "PaginationState":
        return replace(self, pages_emitted=self.pages_emitted + 1)


class Spider:
    """Minimal spider contract.

    Subclasses build page URLs, fetch documents and turn them into records
    (dataclasses with .to_dict()).
    """

    name: str = "base"

    def fetch(self, *args, **kwargs) -> Any:
        raise NotImplementedError

    @staticmethod
    def normalize_records(items: Iterable[Any]) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        for x in items:
            if hasattr(x, "to_dict"):
                out.append(x.to_dict())
            elif isinstance(x, dict):
                out.append(x)
            else:
                raise TypeError(f"Unsupported record type: {type(x)}")
        return out
