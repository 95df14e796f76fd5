"""
GitHub API client for dispatching authenticated requests.

This module picks a token from the pool, clears it through the rate limit
gate, attaches it to the outbound request and sends the request once. When
the gate rejects a token another one is tried, up to a fixed number of
attempts.
"""
import logging
import time
from typing import Dict, Optional

import requests

from starcharts.api.github_exceptions import (
    CredentialExhaustedError, GitHubNetworkError, TokenPoolExhaustedError
)
from starcharts.api.rate_limit import RateLimitGate, TokenCheck
from starcharts.api.token_management import TokenPool
from starcharts.core.context import RequestContext, background
from starcharts.interfaces import IConnectionManager, IMetricsCollector
from starcharts.utils.connection_manager import ConnectionManager
from starcharts.utils.error_handling import log_error

# Configure logging
logger = logging.getLogger(__name__)

MAX_DISPATCH_ATTEMPTS = 3
REQUEST_TIMEOUT = 30


class GitHubApiClient:
    """Dispatches requests to GitHub's REST API with token rotation."""

    def __init__(self, token_pool: TokenPool, gate: Optional[RateLimitGate] = None,
                 connection_manager: Optional[IConnectionManager] = None,
                 metrics_collector: Optional[IMetricsCollector] = None, request_timeout: float = REQUEST_TIMEOUT):
        """Initialize the API client.

        Args:
            token_pool: Pool of GitHub API tokens
            gate: Rate limit gate; one sharing this client's connections is created if omitted
            connection_manager: Optional manager for HTTP connections
            metrics_collector: Optional metrics sink
            request_timeout: Timeout in seconds for a single request
        """
        self.token_pool = token_pool
        self.connection_manager = connection_manager or ConnectionManager()
        self.gate = gate or RateLimitGate(connection_manager=self.connection_manager,
                                          metrics_collector=metrics_collector,
                                          token_pool=token_pool)
        self.metrics_collector = metrics_collector
        self.request_timeout = request_timeout

    def authorized_request(self, method: str, url: str, headers: Optional[Dict[str, str]] = None,
                           ctx: Optional[RequestContext] = None) -> requests.Response:
        """Send a request with the first token the gate accepts.

        Falls back to an anonymous request when the pool has no usable
        tokens left. Transport errors are not retried here.

        Args:
            method: HTTP method
            url: Absolute URL
            headers: Extra request headers
            ctx: Request context carrying the deadline and cancellation

        Returns:
            The response, whatever its status code

        Raises:
            CredentialExhaustedError: If no token passed the gate within MAX_DISPATCH_ATTEMPTS tries
            GitHubNetworkError: If the request could not be sent
            RequestCancelledError: If the context was cancelled
        """
        ctx = ctx or background()

        for attempt in range(1, MAX_DISPATCH_ATTEMPTS + 1):
            ctx.check()
            try:
                token = self.token_pool.pick()
            except TokenPoolExhaustedError as e:
                log_error(logger, "Couldn't get a valid token, sending anonymous request", exception=e,
                          level="warning", component="GitHubApiClient", operation="pick")
                token = None

            if token is None:
                return self._send(method, url, headers, None, ctx)

            outcome = self.gate.check(token, ctx)
            if outcome is TokenCheck.OK:
                return self._send(method, url, headers, token.credential, ctx)

            logger.warning(
                f"Token {token} rejected ({outcome.value}), "
                f"attempt {attempt}/{MAX_DISPATCH_ATTEMPTS}"
            )

        raise CredentialExhaustedError("couldn't find a valid token")

    def _send(self, method: str, url: str, headers: Optional[Dict[str, str]],
              credential: Optional[str], ctx: RequestContext) -> requests.Response:
        request_headers = {"Accept": "application/vnd.github.v3+json"}
        request_headers.update(headers or {})
        if credential:
            request_headers["Authorization"] = f"token {credential}"

        ctx.check()
        start_time = time.time()
        try:
            session = self.connection_manager.get_session(credential)
            response = session.request(method, url, headers=request_headers,
                                       timeout=ctx.timeout_for(self.request_timeout))
        except requests.exceptions.RequestException as e:
            if self.metrics_collector:
                self.metrics_collector.record_api_request(success=False, time_taken=time.time() - start_time)
            logger.error(f"Request error for {url}: {e}")
            raise GitHubNetworkError(f"Request to {url} failed: {e}") from e

        if self.metrics_collector:
            self.metrics_collector.record_api_request(success=response.status_code < 400,
                                                      time_taken=time.time() - start_time)
        return response
