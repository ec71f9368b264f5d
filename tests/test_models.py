from datetime import date

import pytest
from pydantic import ValidationError

from newsbrief.models.search import SearchQuery
from newsbrief.services.crawl.base import PaginationState, PageStatus


def test_search_query_defaults():
    q = SearchQuery(date_from=date(2020, 5, 1))
    assert q.date_to == date(2020, 5, 1)
    assert q.language == "all"
    assert q.page_language == "en"
    assert q.date_block == "2020-05-01"


def test_search_query_range():
    q = SearchQuery(date_from="2020-05-01", date_to="2020-05-03", language="sv")
    assert q.date_block == "2020-05-01--2020-05-03"


def test_search_query_rejects_reversed_range():
    with pytest.raises(ValidationError):
        SearchQuery(date_from=date(2020, 5, 3), date_to=date(2020, 5, 1))


def test_pagination_state_is_immutable_and_advances():
    s = PaginationState(current_page=1, status_code=PageStatus.MORE_PAGES)
    assert s.has_more
    s2 = s.emitted().advance(2, PageStatus.LAST_PAGE)
    assert (s.current_page, s.pages_emitted) == (1, 0)
    assert (s2.current_page, s2.status_code, s2.pages_emitted) == (2, -2, 1)
    assert not s2.has_more
