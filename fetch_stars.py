#!/usr/bin/env python3
"""Star history client main entry point."""

import logging
import sys

from starcharts.api.github_exceptions import ApplicationException, InitializationError
from starcharts.cli.args import parse_args
from starcharts.cli.environment import Environment
from starcharts.core.application import EXIT_INIT_ERROR, EXIT_UNEXPECTED, Application
from starcharts.utils.error_handling import log_error
from starcharts.utils.logging_config import LogManager
from starcharts.utils.path_manager import PathManager


def main(argv=None):
    """Main entry point for the star history client."""
    args = parse_args(argv)

    path_manager = PathManager()
    log_manager = LogManager(
        log_level=getattr(logging, args.log_level or "INFO"),
        logs_dir=path_manager.get_logs_dir(),
    )
    logger = log_manager.get_logger(__name__)

    app = None
    try:
        app = Application(
            args=args,
            log_manager=log_manager,
            path_manager=path_manager,
            environment=Environment(),
        ).initialize()

        return app.run()
    except InitializationError as e:
        log_error(logger, "Application initialization failed", exception=e, level="critical",
                  component="main", operation="initialize")
        return EXIT_INIT_ERROR
    except ApplicationException as e:
        log_error(logger, "Application error", exception=e, level="critical",
                  component="main", operation="run")
        return EXIT_UNEXPECTED
    except Exception as e:
        log_error(logger, "Fatal error", exception=e, level="critical",
                  component="main", operation="unknown")
        return EXIT_UNEXPECTED
    finally:
        if app is not None:
            app.cleanup()


if __name__ == "__main__":
    sys.exit(main())
