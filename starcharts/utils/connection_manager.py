"""
Connection management utilities for HTTP requests.

This module provides centralized management of HTTP connections with
connection pooling and thread safety.
"""

import logging
import threading
from typing import Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from starcharts.utils.error_handling import mask_token

logger = logging.getLogger(__name__)

# Pool sizes cover the page fan-out plus the rate limit checks running beside it
MAX_POOL_CONNECTIONS = 10
MAX_POOL_MAXSIZE = 10
MAX_CONNECT_RETRIES = 2     # Only failures to establish a connection are retried
RETRY_BACKOFF_FACTOR = 0.5

USER_AGENT = "starcharts/0.1"


class ConnectionManager:
    """Manages HTTP connections with connection pooling.

    Sessions are cached per credential so each token reuses its own
    connections. Requests that reached the server are never replayed by the
    adapter: read and status retries are disabled.
    """

    def __init__(self):
        """Initialize the connection manager."""
        self.session_pool: Dict[str, requests.Session] = {}
        self.lock = threading.RLock()

    def get_session(self, token: Optional[str] = None) -> requests.Session:
        """Get or create a pooled session.

        Args:
            token: Optional token to associate with the session

        Returns:
            Requests session configured for connection reuse
        """
        cache_key = token if token else "__default__"

        with self.lock:
            if cache_key in self.session_pool:
                return self.session_pool[cache_key]

            session = self._create_session()
            self.session_pool[cache_key] = session

            if token:
                logger.debug(f"Created new connection pool for token {mask_token(token)}")
            else:
                logger.debug("Created new default connection pool")

            return session

    def _create_session(self) -> requests.Session:
        """Create a requests session with pooled adapters.

        Returns:
            Configured requests session
        """
        session = requests.Session()
        session.headers.update({"User-Agent": USER_AGENT})

        retry_strategy = Retry(
            total=MAX_CONNECT_RETRIES,
            connect=MAX_CONNECT_RETRIES,
            read=0,
            status=0,
            redirect=0,
            backoff_factor=RETRY_BACKOFF_FACTOR,
            raise_on_status=False,
        )

        adapter = HTTPAdapter(
            pool_connections=MAX_POOL_CONNECTIONS,
            pool_maxsize=MAX_POOL_MAXSIZE,
            max_retries=retry_strategy
        )

        session.mount("http://", adapter)
        session.mount("https://", adapter)

        return session

    def clear_all_sessions(self):
        """Clear all sessions from the pool."""
        with self.lock:
            for key, session in self.session_pool.items():
                try:
                    session.close()
                except Exception as e:
                    logger.warning(f"Error closing session for {mask_token(key)}: {e}")

            self.session_pool.clear()
            logger.debug("Cleared all connection pools")
