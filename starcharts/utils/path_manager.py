"""
Path management utilities for the star history client.

This module provides centralized path management for the logs, metrics and
cache directories.
"""
from pathlib import Path
from typing import Optional


class PathManager:
    """Manages paths for logs, metrics, cache, and other application directories."""

    def __init__(self, base_dir: Optional[Path] = None):
        """Initialize the path manager.

        Args:
            base_dir: Optional base directory for all paths. If not provided,
                     defaults to the current working directory.
        """
        self.base_dir = Path(base_dir) if base_dir else Path(".")
        self._logs_dir = None
        self._metrics_dir = None
        self._cache_dir = None

    def get_logs_dir(self) -> Path:
        if self._logs_dir is None:
            self._logs_dir = self.base_dir / "logs"
            self._logs_dir.mkdir(exist_ok=True, parents=True)
        return self._logs_dir

    def get_metrics_dir(self) -> Path:
        if self._metrics_dir is None:
            self._metrics_dir = self.get_logs_dir() / "metrics"
            self._metrics_dir.mkdir(exist_ok=True)
        return self._metrics_dir

    def get_cache_dir(self) -> Path:
        """Directory the file-backed cache keeps its entries in."""
        if self._cache_dir is None:
            self._cache_dir = self.base_dir / "cache"
            self._cache_dir.mkdir(exist_ok=True, parents=True)
        return self._cache_dir
