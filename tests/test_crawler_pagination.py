from datetime import date
from urllib.parse import parse_qs, urlparse

import pytest

from newsbrief.models.search import SearchQuery
from newsbrief.services.crawl.errors import FetchError, PageStateError
from newsbrief.services.crawl.pagination import crawl_search
from newsbrief.services.crawl.spiders.newsbrief_search_spider import NewsBriefSearchSpider


def make_page(status: int, current: int, n_articles: int = 2) -> str:
    blocks = "".join(
        "<div class='articlebox_big'>"
        "<p class='center_story center_headline_top'>"
        f"<a class='headline_link' href='https://example.com/p{current}/a{i}' lang='en'>Story {i}</a></p>"
        "<div class='alert_more'><p class='center_also'>Entities: "
        f"<a href='/NewsBrief/entityedition/en/{100 + i}.html'>E{i}</a></p></div>"
        "</div>"
        for i in range(n_articles)
    )
    return (
        "<html><body>"
        f"<input type='hidden' name='page_count' value='{status}'>"
        f"<input type='hidden' name='current_page' value='{current}'>"
        f"{blocks}</body></html>"
    )


class FakeSite:
    """Serves prepared pages keyed by the requested page number."""

    def __init__(self, pages):
        self.pages = pages
        self.requested = []

    def __call__(self, url: str) -> str:
        page = int(parse_qs(urlparse(url).query)["page"][0])
        self.requested.append(page)
        if page not in self.pages:
            raise FetchError(f"no page {page}", context=url)
        return self.pages[page]


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, result, page, status):
        self.calls.append((page, status, len(result.articles)))
        return [f"articles-{page}"]


QUERY = SearchQuery(date_from=date(2020, 5, 1), language="sv")


def test_no_results_emits_nothing():
    site = FakeSite({1: make_page(0, 1, n_articles=0)})
    emit = Recorder()
    summary = crawl_search(QUERY, spider=NewsBriefSearchSpider(http_get=site), emit=emit)
    assert summary.no_results is True
    assert summary.pages_emitted == 0
    assert emit.calls == []
    assert site.requested == [1]


def test_single_last_page():
    site = FakeSite({1: make_page(-2, 1)})
    emit = Recorder()
    summary = crawl_search(QUERY, spider=NewsBriefSearchSpider(http_get=site), emit=emit)
    assert site.requested == [1]
    assert emit.calls == [(1, -2, 2)]
    assert summary.pages_emitted == 1
    assert summary.files == ["articles-1"]


def test_follows_pages_until_last():
    pages = {i: make_page(-1, i) for i in range(1, 5)}
    pages[5] = make_page(-2, 5)
    site = FakeSite(pages)
    emit = Recorder()
    summary = crawl_search(QUERY, spider=NewsBriefSearchSpider(http_get=site), emit=emit)
    assert site.requested == [1, 2, 3, 4, 5]
    assert [c[0] for c in emit.calls] == [1, 2, 3, 4, 5]
    assert summary.pages_emitted == 5
    assert summary.last_page == 5
    assert summary.last_status == -2


def test_past_last_page_on_first_fetch_is_still_emitted():
    site = FakeSite({1: make_page(-3, 1)})
    emit = Recorder()
    summary = crawl_search(QUERY, spider=NewsBriefSearchSpider(http_get=site), emit=emit)
    assert emit.calls == [(1, -3, 2)]
    assert summary.last_status == -3


def test_stops_when_page_bound_exceeded():
    site = FakeSite({i: make_page(-1, i) for i in range(1, 20)})
    emit = Recorder()
    summary = crawl_search(QUERY, spider=NewsBriefSearchSpider(http_get=site), emit=emit, max_pages=3)
    # page 3 is still within the bound, so page 4 is fetched; nothing after it
    assert site.requested == [1, 2, 3, 4]
    assert summary.pages_emitted == 4


def test_uses_page_number_reported_by_server():
    # Server answers page 2 with page 7, so the next request is for page 8
    site = FakeSite({1: make_page(-1, 1), 2: make_page(-1, 7), 8: make_page(-2, 8)})
    emit = Recorder()
    crawl_search(QUERY, spider=NewsBriefSearchSpider(http_get=site), emit=emit)
    assert site.requested == [1, 2, 8]
    assert [c[0] for c in emit.calls] == [1, 7, 8]


def test_server_repeating_a_page_is_bounded_by_emission_count():
    site = FakeSite({1: make_page(-1, 1), 2: make_page(-1, 1)})
    emit = Recorder()
    summary = crawl_search(QUERY, spider=NewsBriefSearchSpider(http_get=site), emit=emit, max_pages=5)
    assert summary.pages_emitted == 6


def test_fetch_error_aborts_after_emitted_pages():
    site = FakeSite({1: make_page(-1, 1), 2: make_page(-1, 2)})
    emit = Recorder()
    with pytest.raises(FetchError):
        crawl_search(QUERY, spider=NewsBriefSearchSpider(http_get=site), emit=emit)
    assert [c[0] for c in emit.calls] == [1, 2]


def test_unreadable_status_raises():
    site = FakeSite({1: "<html><body><p>maintenance</p></body></html>"})
    with pytest.raises(PageStateError):
        crawl_search(QUERY, spider=NewsBriefSearchSpider(http_get=site), emit=Recorder())
