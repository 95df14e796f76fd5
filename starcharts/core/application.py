"""Application class for the star history client.

This module provides the Application class that manages component lifecycle,
dependencies and configuration. Components are created in dependency order
unless they were injected, then run() fetches the star history of one
repository and writes it out as CSV.
"""

import csv
import logging
import sys
import time
from typing import Dict, Iterable, Iterator, List, Tuple

from starcharts.api.api_client import GitHubApiClient
from starcharts.api.github_client import GitHubClient
from starcharts.api.github_exceptions import (
    ApplicationException, GitHubException, InitializationError, RateLimitedError,
    ResourceNotFoundError, TooManyStargazersError
)
from starcharts.api.models import Stargazer, format_timestamp
from starcharts.api.rate_limit import RateLimitGate
from starcharts.api.token_management import TokenPool
from starcharts.api.token_stats import print_token_stats
from starcharts.cli.args import parse_args
from starcharts.cli.environment import Environment
from starcharts.core.config import Config
from starcharts.core.context import RequestContext
from starcharts.metrics import MetricsCollector
from starcharts.utils.cache_utils import CacheManager
from starcharts.utils.connection_manager import ConnectionManager
from starcharts.utils.error_handling import log_error
from starcharts.utils.logging_config import LogManager
from starcharts.utils.path_manager import PathManager

# Exit codes
EXIT_OK = 0
EXIT_API_ERROR = 1
EXIT_INIT_ERROR = 2
EXIT_UNEXPECTED = 3
EXIT_NOT_FOUND = 4
EXIT_RATE_LIMITED = 5
EXIT_TOO_MANY_STARGAZERS = 6


def star_history(stars: Iterable[Stargazer]) -> Iterator[Tuple[str, int]]:
    """Yield (starred_at, cumulative star count) rows for chronologically sorted stars."""
    for count, star in enumerate(stars, start=1):
        yield format_timestamp(star.starred_at), count


def write_star_history(stars: List[Stargazer], stream) -> None:
    writer = csv.writer(stream)
    writer.writerow(["starred_at", "stars"])
    writer.writerows(star_history(stars))


class Application:
    """Main application for the star history client.

    Attributes:
        args: Command-line arguments
        components: Dictionary of initialized components
    """

    def __init__(self, args=None, log_manager=None, path_manager=None, environment=None):
        """Initialize the application with optional injected dependencies.

        Args:
            args: Command-line arguments (optional, will parse if not provided)
            log_manager: LogManager instance for logging configuration and access
            path_manager: PathManager instance for consistent file path handling
            environment: Environment instance for configuration and env variables
        """
        self.args = args or parse_args()
        self.components: Dict[str, object] = {}

        if log_manager:
            self.components['log_manager'] = log_manager
            self._init_logger = log_manager.get_logger(__name__)
        else:
            self._init_logger = logging.getLogger(__name__)

        if path_manager:
            self.components['path_manager'] = path_manager

        if environment:
            self.components['environment'] = environment

    def initialize(self):
        """Initialize all application components.

        Returns:
            Self for method chaining

        Raises:
            InitializationError: When component initialization fails
        """
        try:
            if 'path_manager' not in self.components:
                self.components['path_manager'] = PathManager()

            if 'log_manager' not in self.components:
                self._init_logging()

            if 'environment' not in self.components:
                self.components['environment'] = Environment()

            if 'config' not in self.components:
                self._init_config()

            if 'metrics_collector' not in self.components:
                self._init_metrics_collector()

            if 'connection_manager' not in self.components:
                self.components['connection_manager'] = ConnectionManager()

            if 'token_pool' not in self.components:
                self._init_token_pool()

            if 'cache_manager' not in self.components:
                self._init_cache_manager()

            if 'github_client' not in self.components:
                self._init_github_client()

            self.logger = self.get_component('log_manager').get_logger(__name__)
            self.logger.info("Application initialized successfully")
            return self
        except Exception as e:
            log_error(self._init_logger, "Application initialization failed", exception=e,
                      level="critical", component="Application", operation="initialize")
            raise InitializationError(f"Failed to initialize application: {str(e)}") from e

    def _init_logging(self):
        log_level = getattr(logging, self.args.log_level or "INFO")
        log_manager = LogManager(log_level=log_level,
                                 logs_dir=self.get_component('path_manager').get_logs_dir())
        self.components['log_manager'] = log_manager
        self._init_logger = log_manager.get_logger(__name__)
        self._init_logger.debug("Logging initialized")

    def _init_config(self):
        config = Config(config_file=getattr(self.args, 'config', None),
                        environment=self.get_component('environment'),
                        logger=self._init_logger)
        self.components['config'] = config

        level = config.get("logging.level")
        if not self.args.log_level and isinstance(level, str) and hasattr(logging, level):
            self.get_component('log_manager').set_log_level(getattr(logging, level))
        self._init_logger.debug("Configuration initialized")

    def _init_metrics_collector(self):
        path_manager = self.get_component('path_manager')
        self.components['metrics_collector'] = MetricsCollector(path_manager=path_manager)
        self._init_logger.debug("Metrics collector initialized")

    def _init_token_pool(self):
        config = self.get_component('config')
        tokens = config.get("github.tokens", [])
        if not tokens:
            self._init_logger.warning("No GitHub tokens configured, using anonymous requests")

        token_pool = TokenPool(tokens, metrics_collector=self.get_component('metrics_collector'))
        self.components['token_pool'] = token_pool
        self._init_logger.debug(f"Token pool initialized with {token_pool.size} tokens")

    def _init_cache_manager(self):
        config = self.get_component('config')
        backend = config.get("cache.backend", "file")
        cache_dir = None
        if backend == "file":
            cache_dir = config.get("cache.dir") or self.get_component('path_manager').get_cache_dir()
        self.components['cache_manager'] = CacheManager(
            max_size=config.get("cache.max_size", 10000),
            default_ttl=config.get("cache.default_ttl", 86400),
            backend=backend,
            cache_dir=cache_dir,
            metrics_collector=self.get_component('metrics_collector'),
        )
        self._init_logger.debug(f"Cache manager initialized with the {backend} backend")

    def _init_github_client(self):
        config = self.get_component('config')
        metrics_collector = self.get_component('metrics_collector')
        connection_manager = self.get_component('connection_manager')
        token_pool = self.get_component('token_pool')

        gate = RateLimitGate(
            max_usage_pct=config.get("github.max_rate_usage_pct", 80),
            connection_manager=connection_manager,
            metrics_collector=metrics_collector,
            token_pool=token_pool,
        )
        api_client = GitHubApiClient(
            token_pool,
            gate=gate,
            connection_manager=connection_manager,
            metrics_collector=metrics_collector,
            request_timeout=config.get("github.request_timeout", 30),
        )
        self.components['github_client'] = GitHubClient(
            api_client,
            self.get_component('cache_manager'),
            page_size=config.get("github.page_size", 100),
            metrics_collector=metrics_collector,
        )
        self._init_logger.debug("GitHub client initialized")

    def get_component(self, name):
        return self.components.get(name)

    def run(self) -> int:
        """Fetch the star history of the requested repository.

        Returns:
            Exit code (0 for success, non-zero for errors)

        Raises:
            ApplicationException: When an unexpected error occurs
        """
        start_time = time.time()
        logger = self.get_component('log_manager').get_logger(__name__)
        client = self.get_component('github_client')
        token_pool = self.get_component('token_pool')
        ctx = RequestContext(timeout=self.args.timeout)

        try:
            if self.args.token_stats:
                print_token_stats(token_pool)

            repository = client.get_repository(self.args.repository, ctx)
            logger.info(f"{repository.full_name} has {repository.stargazers_count:,} stargazers")

            stars = client.get_stargazers(repository, ctx)
            self._write_output(stars)

            logger.info(f"Star history of {repository.full_name} fetched in {time.time() - start_time:.1f}s")

            if self.args.token_stats:
                print_token_stats(token_pool, title="Final Token Statistics")
            return EXIT_OK

        except KeyboardInterrupt:
            log_error(logger, "Interrupted by user", level="warning", component="Application", operation="run")
            return 130
        except ResourceNotFoundError as e:
            log_error(logger, str(e), level="error", component="Application", operation="run")
            return EXIT_NOT_FOUND
        except RateLimitedError as e:
            log_error(logger, "GitHub rate limit reached", exception=e, level="error",
                      component="Application", operation="run")
            return EXIT_RATE_LIMITED
        except TooManyStargazersError as e:
            log_error(logger, str(e), level="error", component="Application", operation="run")
            return EXIT_TOO_MANY_STARGAZERS
        except GitHubException as e:
            log_error(logger, "Failed to fetch star history", exception=e, level="error",
                      component="Application", operation="run")
            return EXIT_API_ERROR
        except Exception as e:
            log_error(logger, "Error fetching star history", exception=e, level="critical",
                      component="Application", operation="run")
            if not isinstance(e, ApplicationException):
                raise ApplicationException(f"Application run failed: {str(e)}") from e
            raise

    def _write_output(self, stars: List[Stargazer]) -> None:
        output = getattr(self.args, 'output', None)
        if output:
            with open(output, 'w', newline='') as f:
                write_star_history(stars, f)
            self.get_component('log_manager').get_logger(__name__).info(f"Star history written to {output}")
        else:
            write_star_history(stars, sys.stdout)

    def cleanup(self):
        """Release connections and export the run's metrics."""
        logger = self.get_component('log_manager').get_logger(__name__)
        logger.info("Cleaning up application resources...")

        metrics_collector = self.get_component('metrics_collector')
        if metrics_collector:
            try:
                metrics_file = metrics_collector.export_to_json()
                logger.info(f"Metrics saved to: {metrics_file}")
            except OSError as e:
                log_error(logger, "Error exporting metrics", exception=e, level="error",
                          component="Application", operation="cleanup")

        connection_manager = self.get_component('connection_manager')
        if connection_manager:
            connection_manager.clear_all_sessions()

        logger.info("Application cleanup complete")
