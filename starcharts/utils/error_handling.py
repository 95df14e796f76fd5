"""
Error handling utilities for the star history client.

This module provides utility functions for consistent error reporting
across the codebase.
"""

import logging
from datetime import datetime
from typing import Optional


def mask_token(token: Optional[str]) -> str:
    """Return a log-safe representation of a credential.

    Args:
        token: Credential to mask

    Returns:
        The first and last four characters, or a fixed mask for short values
    """
    if not token:
        return "<anonymous>"
    if len(token) <= 8:
        return "xxxx...xxxx"
    return f"{token[:4]}...{token[-4:]}"


def format_error_context(error: Exception, operation: str = "", **additional_context) -> dict:
    """Format error information with context for consistent error reporting.
    
    Args:
        error: The exception that was raised
        operation: Name of the operation that failed
        **additional_context: Additional context to include
        
    Returns:
        Dictionary with formatted error information
    """
    error_info = {
        "error_type": error.__class__.__name__,
        "error_message": str(error),
        "timestamp": datetime.now().isoformat(),
        "operation": operation,
    }
    error_info.update(additional_context)
    
    return error_info


def log_error(
    logger: logging.Logger,
    message: str,
    exception: Optional[Exception] = None,
    level: str = "error",
    **context
) -> None:
    """Log errors with consistent format and context.
    
    Use this function for all error logging so every line carries the
    component and operation that produced it.
    
    Args:
        logger: Logger to use
        message: Error message
        exception: Optional exception that caused the error
        level: Log level (critical, error, warning, info)
        **context: Additional context to include (component, operation, etc.)
    
    Example:
        log_error(logger, "Failed to cache page", exception=e, 
                 component="GitHubClient", operation="put")
    """
    context_str = ""
    if context:
        context_str = " Context: " + ", ".join(f"{k}={v}" for k, v in context.items())
    
    full_message = f"{message}{context_str}"
    exc_info = exception is not None
    
    if level == "critical":
        logger.critical(full_message, exc_info=exc_info)
    elif level == "error":
        logger.error(full_message, exc_info=exc_info)
    elif level == "warning":
        logger.warning(full_message, exc_info=exc_info)
    else:
        logger.info(full_message)
