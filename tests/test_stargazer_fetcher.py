"""Unit tests for starcharts.api.stargazer_fetcher covering fan-out, ordering and errors."""

import threading
import time
from datetime import datetime, timedelta, timezone

import pytest

from starcharts.api import stargazer_fetcher
from starcharts.api.github_exceptions import (
    ConfigurationError, NoMorePagesError, RateLimitedError, TooManyStargazersError
)
from starcharts.api.models import Repository, Stargazer
from starcharts.api.stargazer_fetcher import MAX_CONCURRENT_PAGES, StargazerFetcher
from starcharts.core.context import RequestContext

EPOCH = datetime(2020, 1, 1, tzinfo=timezone.utc)


def _repo(count: int) -> Repository:
    return Repository(full_name="octo/hello", stargazers_count=count, created_at=EPOCH)


def _star(minutes: int) -> Stargazer:
    return Stargazer(starred_at=EPOCH + timedelta(minutes=minutes))


@pytest.mark.parametrize("count, pages", [(0, 1), (99, 1), (100, 2), (150, 2), (39999, 400)])
def test_total_pages(count, pages):
    fetcher = StargazerFetcher(lambda repo, page, ctx: [], page_size=100)
    assert fetcher.total_pages(_repo(count)) == pages


def test_results_are_sorted_chronologically():
    t1, t2, t3, t4 = (_star(m) for m in (1, 2, 3, 4))
    pages = {1: [t3, t1], 2: [t4, t2]}
    fetcher = StargazerFetcher(lambda repo, page, ctx: pages[page], page_size=2)

    assert fetcher.fetch_all(_repo(3)) == [t1, t2, t3, t4]


def test_too_many_stargazers_fails_before_any_request():
    calls = []
    fetcher = StargazerFetcher(lambda repo, page, ctx: calls.append(page) or [], page_size=100)

    with pytest.raises(TooManyStargazersError) as excinfo:
        fetcher.fetch_all(_repo(40000))

    assert excinfo.value.pages == 401
    assert calls == []


def test_concurrency_is_bounded_and_every_page_fetched_once():
    lock = threading.Lock()
    state = {"active": 0, "peak": 0}
    seen = []

    def fetch_page(repo, page, ctx):
        with lock:
            state["active"] += 1
            state["peak"] = max(state["peak"], state["active"])
            seen.append(page)
        time.sleep(0.01)
        with lock:
            state["active"] -= 1
        return [_star(page * 10 + i) for i in range(10)]

    fetcher = StargazerFetcher(fetch_page, page_size=10)
    stars = fetcher.fetch_all(_repo(199))

    assert state["peak"] <= MAX_CONCURRENT_PAGES
    assert sorted(seen) == list(range(1, 21))
    assert len(stars) == 200
    assert len(set(stars)) == 200


def test_empty_pages_are_skipped():
    def fetch_page(repo, page, ctx):
        if page == 3:
            raise NoMorePagesError("no more pages to get")
        return [_star(page)]

    fetcher = StargazerFetcher(fetch_page, page_size=1)
    assert fetcher.fetch_all(_repo(2)) == [_star(1), _star(2)]


def test_first_error_propagates():
    def fetch_page(repo, page, ctx):
        if page == 2:
            raise RateLimitedError()
        return [_star(page)]

    fetcher = StargazerFetcher(fetch_page, page_size=1)
    with pytest.raises(RateLimitedError):
        fetcher.fetch_all(_repo(5))


def test_context_is_shared_with_every_page():
    ctx = RequestContext(timeout=30)
    received = []
    lock = threading.Lock()

    def fetch_page(repo, page, page_ctx):
        with lock:
            received.append(page_ctx)
        return [_star(page)]

    StargazerFetcher(fetch_page, page_size=1).fetch_all(_repo(3), ctx)

    assert len(received) == 4
    assert all(item is ctx for item in received)


def test_failure_drops_in_flight_pages_and_skips_queued_ones():
    page_two_failing = threading.Event()
    consumed = []
    calls = []
    lock = threading.Lock()

    def page_one_stars():
        consumed.append(1)
        yield _star(1)

    def fetch_page(repo, page, ctx):
        with lock:
            calls.append(page)
        if page == 1:
            assert page_two_failing.wait(timeout=5)
            # Give page 2 time to mark the fetch as failed
            time.sleep(0.2)
            return page_one_stars()
        if page == 2:
            page_two_failing.set()
            raise RateLimitedError()
        return [_star(page)]

    fetcher = StargazerFetcher(fetch_page, page_size=1, max_workers=2)
    with pytest.raises(RateLimitedError):
        fetcher.fetch_all(_repo(9))

    assert sorted(calls) == [1, 2]
    assert consumed == []


def test_interrupt_cancels_context_and_queued_pages(monkeypatch):
    ctx = RequestContext()
    calls = []
    lock = threading.Lock()

    def fetch_page(repo, page, page_ctx):
        with lock:
            calls.append(page)
        for _ in range(1000):
            if page_ctx.cancelled:
                break
            time.sleep(0.005)
        return [_star(page)]

    def interrupted(futures):
        raise KeyboardInterrupt()

    monkeypatch.setattr(stargazer_fetcher, "as_completed", interrupted)
    fetcher = StargazerFetcher(fetch_page, page_size=1, max_workers=2)

    with pytest.raises(KeyboardInterrupt):
        fetcher.fetch_all(_repo(9), ctx)

    assert ctx.cancelled
    assert set(calls) <= {1, 2}


@pytest.mark.parametrize("page_size", [0, -5, 101])
def test_invalid_page_size_is_rejected(page_size):
    with pytest.raises(ConfigurationError):
        StargazerFetcher(lambda repo, page, ctx: [], page_size=page_size)
