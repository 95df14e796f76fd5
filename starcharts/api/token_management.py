"""
Token management for GitHub API access.

This module handles GitHub API token management including:
- Parsing token lists from configuration
- Token validity tracking
- Round-robin token rotation that skips invalidated tokens
"""

import json
import logging
import re
import threading
from typing import Any, Dict, List, Optional

from starcharts.api.github_exceptions import TokenPoolExhaustedError
from starcharts.utils.error_handling import mask_token

# Configure logging
logger = logging.getLogger(__name__)


def parse_github_tokens(token_string: str) -> List[str]:
    """Parse a string of GitHub tokens into a list.

    This function supports multiple formats:
    - Single token: "abc123"
    - Comma-separated list: "abc123,def456"
    - Newline-separated list: "abc123\\ndef456"
    - JSON array: '["abc123", "def456"]'

    Args:
        token_string: String containing one or more GitHub tokens

    Returns:
        List of tokens as strings
    """
    if not token_string or not isinstance(token_string, str):
        return []

    # Check if it's a JSON array
    if token_string.strip().startswith('[') and token_string.strip().endswith(']'):
        try:
            tokens = json.loads(token_string)
            if isinstance(tokens, list):
                return [t.strip() for t in tokens if t and isinstance(t, str)]
        except (json.JSONDecodeError, TypeError):
            pass

    # Split by commas and/or newlines
    tokens = re.split(r'[,\n]+', token_string)
    return [t.strip() for t in tokens if t.strip()]


class Token:
    """A single credential and its validity.

    Validity is a one-way flag: once revoked a token stays invalid for the
    lifetime of the process.
    """

    def __init__(self, credential: str):
        self.credential = credential
        self._revoked = threading.Event()

    @property
    def valid(self) -> bool:
        return not self._revoked.is_set()

    def invalidate(self) -> None:
        """Permanently mark this token as invalid."""
        if not self._revoked.is_set():
            logger.warning(f"Invalidated token {self}")
        self._revoked.set()

    def __str__(self) -> str:
        return mask_token(self.credential)

    def __repr__(self) -> str:
        return f"Token({self}, valid={self.valid})"


class TokenPool:
    """Round-robin selector over a fixed set of tokens.

    Invalidated tokens are skipped. A pool without tokens is valid and always
    returns None so callers fall back to anonymous requests.
    """

    def __init__(self, tokens: List[str], metrics_collector: Optional[Any] = None):
        """Initialize the token pool.

        Args:
            tokens: List of GitHub API tokens, possibly empty
            metrics_collector: Optional metrics sink for pool size gauges
        """
        self.tokens: List[Token] = [Token(t) for t in tokens]
        self.metrics_collector = metrics_collector
        self._next = 0
        self._cursor_lock = threading.Lock()

        logger.debug(f"Created token pool with {len(self.tokens)} tokens")
        self.report_counts()

    @property
    def size(self) -> int:
        return len(self.tokens)

    def _advance(self) -> Token:
        with self._cursor_lock:
            idx = self._next
            self._next = (idx + 1) % len(self.tokens)
        return self.tokens[idx]

    def pick(self) -> Optional[Token]:
        """Pick the next valid token in rotation order.

        Every token is checked at most once per call, so a call never loops
        while other callers keep the cursor moving.

        Returns:
            The next valid token, or None when the pool has no tokens

        Raises:
            TokenPoolExhaustedError: If every token has been invalidated
        """
        if not self.tokens:
            return None

        for _ in range(len(self.tokens) + 1):
            token = self._advance()
            if token.valid:
                logger.debug(f"Picked token {token}")
                return token

        raise TokenPoolExhaustedError("no valid token left")

    def valid_count(self) -> int:
        return sum(1 for token in self.tokens if token.valid)

    def report_counts(self) -> None:
        """Push the current pool gauges into the metrics sink."""
        if self.metrics_collector:
            valid = self.valid_count()
            self.metrics_collector.set_token_counts(available=valid, invalidated=self.size - valid)

    def get_token_stats(self) -> Dict[str, Any]:
        """Get statistics about all tokens.

        Returns:
            Dict with one entry per token position plus a "_summary" entry
        """
        stats: Dict[str, Any] = {}
        for position, token in enumerate(self.tokens):
            stats[f"token_{position}"] = {
                "token": str(token),
                "status": "VALID" if token.valid else "INVALID",
            }

        valid = self.valid_count()
        stats["_summary"] = {
            "total_tokens": self.size,
            "valid_tokens": valid,
            "invalid_tokens": self.size - valid,
        }
        return stats
