"""
Rate limit gate for GitHub API tokens.

Before a token is attached to a request its quota is queried from the
``/rate_limit`` endpoint. Tokens GitHub no longer accepts are invalidated for
good; tokens that have used too much of their quota are passed over for this
request only.
"""

import enum
import logging
from typing import Any, Optional

import requests

from starcharts.api.models import RateLimit
from starcharts.api.github_exceptions import ResponseDecodeError
from starcharts.api.token_management import Token
from starcharts.core.context import RequestContext, background
from starcharts.utils.connection_manager import ConnectionManager
from starcharts.utils.error_handling import format_error_context, log_error

# Configure logging
logger = logging.getLogger(__name__)

GITHUB_RATE_LIMIT_URL = "https://api.github.com/rate_limit"
RATE_LIMIT_TIMEOUT = 10


class TokenCheck(enum.Enum):
    """Outcome of a rate limit check."""
    OK = "ok"
    INVALID = "invalid"
    OVER_QUOTA = "over_quota"
    UNAVAILABLE = "unavailable"


def is_above_target_usage(rate: RateLimit, max_usage_pct: int) -> bool:
    """Check whether a token has too little quota left to be used.

    The remaining share of the quota, in whole percent, must be at least
    max_usage_pct. A zero limit never leaves any usable quota.

    Args:
        rate: Quota status of the token
        max_usage_pct: Minimum remaining percentage required

    Returns:
        True if the token should not be used
    """
    if rate.limit <= 0:
        return True
    return rate.remaining * 100 // rate.limit < max_usage_pct


class RateLimitGate:
    """Accepts, rejects or invalidates a token based on its live quota."""

    def __init__(self, max_usage_pct: int = 80, connection_manager: Optional[ConnectionManager] = None,
                 metrics_collector: Optional[Any] = None, token_pool: Optional[Any] = None):
        """Initialize the gate.

        Args:
            max_usage_pct: Minimum remaining quota percentage for a token to be used
            connection_manager: ConnectionManager for HTTP requests
            metrics_collector: Optional metrics sink
            token_pool: Optional pool whose gauges are refreshed on invalidation
        """
        self.max_usage_pct = max_usage_pct
        self.connection_manager = connection_manager or ConnectionManager()
        self.metrics_collector = metrics_collector
        self.token_pool = token_pool

    def check(self, token: Token, ctx: Optional[RequestContext] = None) -> TokenCheck:
        """Check the quota of a token.

        Args:
            token: Token to check
            ctx: Request context bounding the check

        Returns:
            TokenCheck outcome
        """
        ctx = ctx or background()
        ctx.check()

        headers = {
            "Authorization": f"token {token.credential}",
            "Accept": "application/vnd.github.v3+json",
        }

        try:
            session = self.connection_manager.get_session(token.credential)
            response = session.get(GITHUB_RATE_LIMIT_URL, headers=headers,
                                   timeout=ctx.timeout_for(RATE_LIMIT_TIMEOUT))
        except requests.exceptions.RequestException as e:
            error_context = format_error_context(e, operation="check_rate_limit", token=str(token))
            log_error(logger, f"Network error checking rate limit for token {token}",
                      level="warning", **error_context)
            return TokenCheck.UNAVAILABLE

        if response.status_code == 401:
            token.invalidate()
            if self.token_pool is not None:
                self.token_pool.report_counts()
            log_error(logger, f"Authentication failed for token {token}", level="error",
                      component="RateLimitGate", operation="check_rate_limit")
            return TokenCheck.INVALID

        if response.status_code != 200:
            log_error(logger, f"Failed to check rate limit for token {token}, "
                              f"status code: {response.status_code}",
                      level="warning", component="RateLimitGate", operation="check_rate_limit")
            return TokenCheck.UNAVAILABLE

        try:
            rate = RateLimit.from_api(response.json())
        except (ValueError, ResponseDecodeError) as e:
            error_context = format_error_context(e, operation="parse_rate_limit", token=str(token))
            log_error(logger, f"Error parsing rate limit response for token {token}",
                      level="warning", **error_context)
            return TokenCheck.UNAVAILABLE

        logger.debug(f"Token {token} rate {rate.remaining}/{rate.limit}")
        if self.metrics_collector:
            self.metrics_collector.set_rate_limit_remaining(str(token), rate.remaining)

        if is_above_target_usage(rate, self.max_usage_pct):
            logger.info(f"Token {token} usage is too high: {rate.remaining}/{rate.limit}")
            return TokenCheck.OVER_QUOTA

        return TokenCheck.OK
