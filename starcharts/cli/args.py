"""Command-line argument parsing for the star history client."""

import argparse


def parse_args(argv=None):
    """Parse command-line arguments for the star history client.

    Args:
        argv: Argument list (defaults to sys.argv[1:])

    Returns:
        Namespace containing the parsed arguments.
    """
    parser = argparse.ArgumentParser(description="GitHub repository star history")
    parser.add_argument(
        "repository",
        help="Repository to chart, as owner/name"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Overall deadline in seconds for fetching the star history (default: none)"
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Write the star history CSV to this file instead of stdout"
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a JSON configuration file"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set logging level (default: LOG_LEVEL or INFO)"
    )
    parser.add_argument(
        "--token-stats",
        action="store_true",
        help="Show token statistics before and after fetching"
    )

    return parser.parse_args(argv)
