"""GitHub token statistics reporting."""

import logging

logger = logging.getLogger(__name__)


def print_token_stats(token_pool, title: str = "Token Statistics"):
    """Log token statistics.

    Args:
        token_pool: TokenPool instance.
        title: Heading for the report.
    """
    stats = token_pool.get_token_stats()
    summary = stats["_summary"]
    logger.info(f"{title}:")
    logger.info(f"Total Tokens: {summary['total_tokens']}, "
                f"Valid: {summary['valid_tokens']}, Invalid: {summary['invalid_tokens']}")

    for key, info in stats.items():
        if key == "_summary":
            continue
        logger.info(f"  {info['token']}: {info['status']}")

    if summary["total_tokens"] and not summary["valid_tokens"]:
        logger.warning("All tokens have been invalidated, requests will be sent anonymously")
