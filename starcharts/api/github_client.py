"""
GitHub client for repository metadata and stargazers.

This module wraps every resource fetch in a conditional request: the etag
seen last time is sent along, a Not-Modified answer is served from the cache
and a fresh body is decoded and written back to the cache together with its
new etag.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

import requests
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from starcharts.api.api_client import GitHubApiClient
from starcharts.api.github_exceptions import (
    CacheException, CacheInconsistencyError, GitHubAPIError, GitHubNetworkError,
    NoMorePagesError, RateLimitedError, ResourceNotFoundError, ResponseDecodeError
)
from starcharts.api.models import (
    Repository, Stargazer, stargazers_from_api, stargazers_to_list
)
from starcharts.api.stargazer_fetcher import StargazerFetcher, validate_page_size
from starcharts.core.context import RequestContext, background
from starcharts.interfaces import ICacheStore, IMetricsCollector
from starcharts.utils.error_handling import log_error

# Configure logging
logger = logging.getLogger(__name__)

GITHUB_REST_API_URL = "https://api.github.com"
STAR_MEDIA_TYPE = "application/vnd.github.v3.star+json"

# Attempts for a conditional request whose transport failed
TRANSPORT_ATTEMPTS = 3

# Repository names never contain "#", so it cannot collide with a name
KEY_SEPARATOR = "#"


def etag_key(key: str) -> str:
    return f"{key}{KEY_SEPARATOR}etag"


def page_key(full_name: str, page: int) -> str:
    return f"{full_name}{KEY_SEPARATOR}page{KEY_SEPARATOR}{page}"


class GitHubClient:
    """Cache-assisted client for the resources a star history is built from."""

    def __init__(self, api_client: GitHubApiClient, cache: ICacheStore, page_size: int = 100,
                 metrics_collector: Optional[IMetricsCollector] = None, retry_backoff: float = 1.0):
        """Initialize the GitHub client.

        Args:
            api_client: Dispatcher for authenticated requests
            cache: Key/value store for resources and etags
            page_size: Number of stargazers requested per page, 1 to 100
            metrics_collector: Optional metrics sink
            retry_backoff: Multiplier for the wait between transport retries, in seconds

        Raises:
            ConfigurationError: If page_size is out of range
        """
        self.api_client = api_client
        self.cache = cache
        self.page_size = validate_page_size(page_size)
        self.metrics_collector = metrics_collector
        self._retrying = Retrying(
            stop=stop_after_attempt(TRANSPORT_ATTEMPTS),
            wait=wait_exponential(multiplier=retry_backoff, max=10),
            retry=retry_if_exception_type(GitHubNetworkError),
            reraise=True,
        )
        self.stargazer_fetcher = StargazerFetcher(self.fetch_stargazer_page, page_size=page_size)

    def get_repository(self, name: str, ctx: Optional[RequestContext] = None) -> Repository:
        """Get repository metadata.

        Args:
            name: Full repository name, "owner/repo"
            ctx: Request context carrying the deadline and cancellation

        Returns:
            The repository

        Raises:
            ResourceNotFoundError: If the repository does not exist
            RateLimitedError: If GitHub reports the quota as exceeded
            GitHubAPIError: For any other unexpected response
        """
        return self._fetch_cached(
            key=name,
            url=f"{GITHUB_REST_API_URL}/repos/{name}",
            decode=lambda response: Repository.from_api(self._json(response)),
            encode=Repository.to_dict,
            restore=Repository.from_dict,
            not_found=lambda: ResourceNotFoundError(name),
            ctx=ctx,
        )

    def get_stargazers(self, repository: Repository, ctx: Optional[RequestContext] = None) -> List[Stargazer]:
        """Get every stargazer of a repository, oldest first.

        Raises:
            TooManyStargazersError: If GitHub won't list all stars of the repository
            RateLimitedError: If GitHub reports the quota as exceeded
            GitHubAPIError: For any other unexpected response
        """
        return self.stargazer_fetcher.fetch_all(repository, ctx)

    def fetch_stargazer_page(self, repository: Repository, page: int,
                             ctx: Optional[RequestContext] = None) -> List[Stargazer]:
        """Get one page of stargazers.

        Raises:
            NoMorePagesError: If the page is empty
        """
        return self._fetch_cached(
            key=page_key(repository.full_name, page),
            url=(f"{GITHUB_REST_API_URL}/repos/{repository.full_name}/stargazers"
                 f"?page={page}&per_page={self.page_size}"),
            decode=self._decode_page,
            encode=stargazers_to_list,
            restore=stargazers_from_api,
            headers={"Accept": STAR_MEDIA_TYPE},
            ctx=ctx,
        )

    def _decode_page(self, response: requests.Response) -> List[Stargazer]:
        stars = stargazers_from_api(self._json(response))
        if not stars:
            raise NoMorePagesError("no more pages to get")
        return stars

    @staticmethod
    def _json(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ResponseDecodeError(f"Response body is not valid JSON: {e}") from e

    def _fetch_cached(self, key: str, url: str, decode: Callable[[requests.Response], Any],
                      encode: Callable[[Any], Any], restore: Callable[[Any], Any],
                      ctx: Optional[RequestContext] = None,
                      headers: Optional[Dict[str, str]] = None,
                      not_found: Optional[Callable[[], Exception]] = None) -> Any:
        """Fetch a resource through the conditional request cycle.

        The first pass sends the cached etag. If GitHub answers Not-Modified
        but the value has been evicted, the stale etag is dropped and a second
        and last pass fetches a fresh body without a validator.
        """
        ctx = ctx or background()
        tag_key = etag_key(key)
        etag = self._cache_get(tag_key)

        for _ in range(2):
            request_headers = dict(headers or {})
            if etag:
                request_headers["If-None-Match"] = etag

            response = self._retrying.copy()(self.api_client.authorized_request,
                                             "GET", url, headers=request_headers, ctx=ctx)
            status = response.status_code

            if status == 304:
                if not etag:
                    raise GitHubAPIError(f"Not modified without a validator for {key}", status_code=status)
                try:
                    value = self._restore(key, restore)
                except CacheInconsistencyError as e:
                    log_error(logger, str(e), level="warning", component="GitHubClient", operation="not_modified")
                    self._cache_delete(tag_key)
                    etag = None
                    continue
                logger.info(f"{key} not modified")
                if self.metrics_collector:
                    self.metrics_collector.record_etag_hit()
                return value

            if status in (403, 429):
                logger.warning(f"Rate limit hit fetching {key}")
                if self.metrics_collector:
                    self.metrics_collector.record_rate_limit_hit()
                raise RateLimitedError()

            if status == 200:
                value = decode(response)
                self._cache_put(key, encode(value))
                new_etag = response.headers.get("ETag")
                if new_etag:
                    self._cache_put(tag_key, new_etag)
                return value

            if status == 404 and not_found is not None:
                raise not_found()

            raise GitHubAPIError(f"Failed to talk with github api (HTTP {status})",
                                 status_code=status, body=response.text)

        raise GitHubAPIError(f"Not modified without a cached value for {key}", status_code=304)

    def _restore(self, key: str, restore: Callable[[Any], Any]) -> Any:
        cached, found = self._cache_lookup(key)
        if not found:
            raise CacheInconsistencyError(key)
        try:
            return restore(cached)
        except ResponseDecodeError as e:
            raise CacheInconsistencyError(key) from e

    def _cache_lookup(self, key: str):
        try:
            return self.cache.get(key)
        except CacheException as e:
            log_error(logger, f"Failed to get {key} from cache", exception=e, level="warning",
                      component="GitHubClient", operation="get")
            return None, False

    def _cache_get(self, key: str) -> Optional[str]:
        value, found = self._cache_lookup(key)
        return value if found and isinstance(value, str) else None

    def _cache_put(self, key: str, value: Any) -> None:
        try:
            self.cache.put(key, value)
        except CacheException as e:
            log_error(logger, f"Failed to cache {key}", exception=e, level="warning",
                      component="GitHubClient", operation="put")

    def _cache_delete(self, key: str) -> None:
        try:
            self.cache.delete(key)
        except CacheException as e:
            log_error(logger, f"Failed to delete {key} from cache", exception=e, level="warning",
                      component="GitHubClient", operation="delete")
