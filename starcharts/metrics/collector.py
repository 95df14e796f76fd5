"""
Metrics collection for the star history client.

This module provides an injectable metrics sink for the API client. It
replaces process-wide counters with an instance the application creates and
hands to the components that report into it.

Metrics tracked:
  * API: requests, errors, rate limit hits, effective etag uses
  * Tokens: available, invalidated, remaining quota per token
  * Cache: gets, puts, deletes, errors
"""

import json
import logging
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

# Configure logging
logger = logging.getLogger(__name__)


class MetricsCollector:
    """Collects and reports metrics for the star history client."""

    def __init__(self, metrics_dir: Optional[Union[str, Path]] = None, path_manager: Optional[Any] = None):
        """Initialize the metrics collector.

        Args:
            metrics_dir: Directory to store exported metrics files (optional)
            path_manager: Optional PathManager instance for directory management
        """
        self.path_manager = path_manager

        if metrics_dir:
            self._metrics_dir = Path(metrics_dir)
        elif path_manager:
            self._metrics_dir = path_manager.get_metrics_dir()
        else:
            self._metrics_dir = None

        self._lock = threading.RLock()
        self.reset_stats()

    def reset_stats(self) -> None:
        """Reset all metrics to their initial values."""
        with self._lock:
            self._metrics = {
                "api": {
                    "requests": 0,
                    "errors": 0,
                    "rate_limit_hits": 0,
                    "effective_etag_uses": 0,
                    "total_time": 0.0,
                },
                "tokens": {
                    "available": 0,
                    "invalidated": 0,
                    "rate_limit_remaining": {},
                },
                "cache": {
                    "gets": 0,
                    "puts": 0,
                    "deletes": 0,
                    "errors": 0,
                },
                "performance": {
                    "start_time": time.time(),
                },
            }

    def record_api_request(self, success: bool = True, time_taken: float = 0.0) -> None:
        """Record API request metrics.

        Args:
            success: Whether the request was successful
            time_taken: Time taken for the request in seconds
        """
        with self._lock:
            self._metrics["api"]["requests"] += 1
            self._metrics["api"]["total_time"] += time_taken
            if not success:
                self._metrics["api"]["errors"] += 1

    def record_rate_limit_hit(self) -> None:
        with self._lock:
            self._metrics["api"]["rate_limit_hits"] += 1

    def record_etag_hit(self) -> None:
        with self._lock:
            self._metrics["api"]["effective_etag_uses"] += 1

    def record_cache_operation(self, operation: str, success: bool = True) -> None:
        """Record a cache operation.

        Args:
            operation: One of 'get', 'put' or 'delete'
            success: Whether the operation succeeded
        """
        with self._lock:
            if not success:
                self._metrics["cache"]["errors"] += 1
                return
            key = f"{operation}s"
            if key in self._metrics["cache"]:
                self._metrics["cache"][key] += 1

    def set_token_counts(self, available: int, invalidated: int) -> None:
        with self._lock:
            self._metrics["tokens"]["available"] = available
            self._metrics["tokens"]["invalidated"] = invalidated

    def set_rate_limit_remaining(self, token_label: str, remaining: int) -> None:
        with self._lock:
            self._metrics["tokens"]["rate_limit_remaining"][token_label] = remaining

    def get_metrics(self) -> Dict[str, Any]:
        """Get a snapshot of all collected metrics.

        Returns:
            Deep copy of the metrics dictionary with run time added
        """
        with self._lock:
            snapshot = json.loads(json.dumps(self._metrics))
        snapshot["performance"]["run_time"] = time.time() - snapshot["performance"]["start_time"]
        return snapshot

    def export_to_json(self, filepath: Optional[Union[str, Path]] = None) -> str:
        """Export metrics to a JSON file.

        Args:
            filepath: Target file; defaults to a timestamped file in the metrics directory

        Returns:
            Path to the JSON file
        """
        if filepath is None:
            metrics_dir = self._metrics_dir or Path("logs/metrics")
            metrics_dir.mkdir(exist_ok=True, parents=True)
            filepath = metrics_dir / f"metrics_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"

        filepath = Path(filepath)
        with open(filepath, 'w') as f:
            json.dump(self.get_metrics(), f, indent=2)

        logger.debug(f"Exported metrics to JSON: {filepath}")
        return str(filepath)
