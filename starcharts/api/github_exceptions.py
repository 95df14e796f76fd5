"""
Exceptions for the star history client.

This module contains common exceptions used throughout the codebase.
All components should use these exception classes for consistency.
"""

from typing import Optional


# Base exceptions for different components
class GitHubException(Exception):
    """Base exception for all GitHub-related errors."""
    pass


class CacheException(Exception):
    """Base exception for all cache-related errors."""
    pass


class ConfigException(Exception):
    """Base exception for all configuration-related errors."""
    pass


class ApplicationException(Exception):
    """Base exception for application-level errors."""
    pass


# GitHub API exceptions
class GitHubAPIError(GitHubException):
    """Exception raised when GitHub API returns an unexpected response.

    The response body is kept for diagnostics.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        if body:
            message = f"{message}: {body}"
        super().__init__(message)


class RateLimitedError(GitHubException):
    """Exception raised when GitHub reports the quota as exceeded.

    Callers should back off and retry later.
    """

    def __init__(self, message: str = "rate limited, please try again later"):
        super().__init__(message)


class ResourceNotFoundError(GitHubException):
    """Exception raised when the requested repository does not exist."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Repository not found: {name}")


class TooManyStargazersError(GitHubException):
    """Exception raised when a repository has more stargazers than GitHub lets us list."""

    def __init__(self, name: str, pages: int):
        self.name = name
        self.pages = pages
        super().__init__(
            f"Repository {name} has too many stargazers ({pages} pages), "
            f"github won't allow to list all stars"
        )


class GitHubNetworkError(GitHubException):
    """Exception raised when network connection to GitHub API fails."""
    pass


class ResponseDecodeError(GitHubException):
    """Exception raised when a successful response body cannot be decoded."""
    pass


class RequestCancelledError(GitHubException):
    """Exception raised when the caller cancelled the request or its deadline passed."""
    pass


# Token management exceptions
class CredentialExhaustedError(GitHubException):
    """Exception raised when no usable token could be found."""
    pass


class TokenPoolExhaustedError(CredentialExhaustedError):
    """Exception raised when every token in the pool has been invalidated."""
    pass


# Cache exceptions
class CacheInconsistencyError(CacheException):
    """Exception raised when an etag is cached but the value it validates is gone."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Etag cached without value for {key}")


# Config exceptions
class ConfigurationError(ConfigException):
    """Exception raised when there's an error in configuration."""
    pass


# Application exceptions
class InitializationError(ApplicationException):
    """Exception raised when component initialization fails."""
    pass


class NoMorePagesError(GitHubException):
    """Raised for an empty stargazer page.

    Only the stargazer collector consumes it; it never reaches callers.
    """
    pass
