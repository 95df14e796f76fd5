"""
Interfaces module for the star history client.

This module defines protocol classes that represent interfaces for the
collaborators of the API client. Using these protocols keeps the client
independent of the concrete cache, metrics and connection implementations.
"""

from typing import Any, Dict, Optional, Protocol, Tuple

import requests


class ICacheStore(Protocol):
    """Interface for the key/value store the client caches resources in."""

    def get(self, key: str) -> Tuple[Any, bool]:
        """Return the value stored under key and whether it was found."""
        ...

    def put(self, key: str, value: Any) -> None:
        """Store a value, raising CacheException on failure."""
        ...

    def delete(self, key: str) -> None:
        """Delete a key, raising CacheException on failure."""
        ...


class IMetricsCollector(Protocol):
    """Interface for metrics collection components."""

    def record_api_request(self, success: bool = True, time_taken: float = 0.0) -> None:
        """Record one outbound API request."""
        ...

    def record_rate_limit_hit(self) -> None:
        """Record that GitHub reported the quota as exceeded."""
        ...

    def record_etag_hit(self) -> None:
        """Record a resource served through a Not-Modified response."""
        ...

    def record_cache_operation(self, operation: str, success: bool = True) -> None:
        """Record a cache get, put or delete."""
        ...

    def set_token_counts(self, available: int, invalidated: int) -> None:
        """Update the token pool gauges."""
        ...

    def set_rate_limit_remaining(self, token_label: str, remaining: int) -> None:
        """Update the remaining quota gauge for a token."""
        ...

    def get_metrics(self) -> Dict[str, Any]:
        """Get all collected metrics."""
        ...


class IConnectionManager(Protocol):
    """Interface for connection management components."""

    def get_session(self, token: Optional[str] = None) -> requests.Session:
        """Get a session for the given token."""
        ...

    def clear_all_sessions(self) -> None:
        """Clear all sessions."""
        ...

