"""
Stargazer fetcher for the star history client.

This module enumerates every stargazer page of a repository in parallel,
merges the pages and returns the stars in chronological order.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional

from starcharts.api.github_exceptions import ConfigurationError, NoMorePagesError, TooManyStargazersError
from starcharts.api.models import Repository, Stargazer
from starcharts.core.context import RequestContext, background

# Configure logging
logger = logging.getLogger(__name__)

# GitHub refuses to paginate stargazers past this page
MAX_PAGES = 400
MAX_CONCURRENT_PAGES = 4
MAX_PAGE_SIZE = 100

PageFetcher = Callable[[Repository, int, RequestContext], List[Stargazer]]


def validate_page_size(page_size: int) -> int:
    """Check that a page size is one GitHub serves.

    Raises:
        ConfigurationError: If page_size is not an integer between 1 and 100
    """
    if isinstance(page_size, bool) or not isinstance(page_size, int) or not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ConfigurationError(f"Page size must be between 1 and {MAX_PAGE_SIZE}, got {page_size!r}")
    return page_size


class StargazerFetcher:
    """Fetches all stargazer pages of a repository with bounded concurrency."""

    def __init__(self, fetch_page: PageFetcher, page_size: int = 100,
                 max_workers: int = MAX_CONCURRENT_PAGES):
        """Initialize the stargazer fetcher.

        Args:
            fetch_page: Callable fetching one page; raises NoMorePagesError on an empty page
            page_size: Number of stargazers per page, 1 to 100
            max_workers: Maximum number of pages fetched at the same time

        Raises:
            ConfigurationError: If page_size is out of range
        """
        self.fetch_page = fetch_page
        self.page_size = validate_page_size(page_size)
        self.max_workers = max_workers

    def total_pages(self, repository: Repository) -> int:
        return repository.stargazers_count // self.page_size + 1

    def fetch_all(self, repository: Repository, ctx: Optional[RequestContext] = None) -> List[Stargazer]:
        """Fetch every stargazer of a repository.

        On an interrupt the context is cancelled, so pages in flight stop at
        their next request, and queued pages are never sent.

        Args:
            repository: Repository to enumerate
            ctx: Request context shared by all page requests

        Returns:
            Stargazers sorted by starred_at, oldest first

        Raises:
            TooManyStargazersError: If the repository spans more pages than GitHub serves
            GitHubException: The first error raised by any page fetch
        """
        ctx = ctx or background()
        pages = self.total_pages(repository)
        if pages > MAX_PAGES:
            raise TooManyStargazersError(repository.full_name, pages)

        logger.info(f"Fetching {pages} stargazer pages for {repository.full_name}")

        stars: List[Stargazer] = []
        stars_lock = threading.Lock()
        failed = threading.Event()

        def fetch(page: int) -> None:
            # Pages queued behind a failure are not worth sending
            if failed.is_set():
                return
            try:
                result = self.fetch_page(repository, page, ctx)
            except NoMorePagesError:
                logger.debug(f"No stargazers on page {page} of {repository.full_name}")
                return
            except Exception:
                failed.set()
                raise
            with stars_lock:
                if not failed.is_set():
                    stars.extend(result)

        first_error: Optional[BaseException] = None
        with ThreadPoolExecutor(max_workers=self.max_workers,
                                thread_name_prefix="StargazerPage") as executor:
            futures = {executor.submit(fetch, page): page for page in range(1, pages + 1)}
            try:
                for future in as_completed(futures):
                    if future.cancelled():
                        continue
                    error = future.exception()
                    if error is None:
                        continue
                    if first_error is None:
                        first_error = error
                        logger.warning(
                            f"Page {futures[future]} of {repository.full_name} failed, "
                            f"abandoning remaining pages: {error}"
                        )
                        for pending in futures:
                            pending.cancel()
            except KeyboardInterrupt:
                logger.warning(f"Interrupted while fetching stargazers of {repository.full_name}")
                failed.set()
                for pending in futures:
                    pending.cancel()
                ctx.cancel()
                raise

        if first_error is not None:
            raise first_error

        stars.sort(key=lambda star: star.starred_at)
        logger.info(f"Fetched {len(stars)} stargazers for {repository.full_name}")
        return stars
