"""
Data models for GitHub API resources.

These are the records the client returns to callers and stores in the cache.
Each model knows how to build itself from a GitHub REST payload and how to
round-trip through the cache as plain JSON-compatible data.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List

from starcharts.api.github_exceptions import ResponseDecodeError


def parse_timestamp(value: str) -> datetime:
    """Parse a GitHub ISO-8601 timestamp such as ``2020-01-02T03:04:05Z``."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def format_timestamp(value: datetime) -> str:
    """Format a timestamp the way GitHub does."""
    return value.isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class RateLimit:
    """Quota status of a single token, fetched fresh for every check."""
    remaining: int
    limit: int

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "RateLimit":
        try:
            rate = payload["rate"]
            return cls(remaining=int(rate["remaining"]), limit=int(rate["limit"]))
        except (KeyError, TypeError, ValueError) as e:
            raise ResponseDecodeError(f"Invalid rate limit payload: {e}") from e


@dataclass(frozen=True)
class Repository:
    """
    Repository metadata needed to enumerate its stargazers.
    """
    full_name: str
    stargazers_count: int
    created_at: datetime

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Repository":
        """Build a repository from a ``GET /repos/{owner}/{repo}`` body.

        Raises:
            ResponseDecodeError: If a required field is missing or malformed
        """
        try:
            return cls(
                full_name=payload["full_name"],
                stargazers_count=int(payload["stargazers_count"]),
                created_at=parse_timestamp(payload["created_at"]),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ResponseDecodeError(f"Invalid repository payload: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            "full_name": self.full_name,
            "stargazers_count": self.stargazers_count,
            "created_at": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Repository":
        return cls.from_api(data)


@dataclass(frozen=True)
class Stargazer:
    """A single star, identified only by when it was given."""
    starred_at: datetime

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Stargazer":
        try:
            return cls(starred_at=parse_timestamp(payload["starred_at"]))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ResponseDecodeError(f"Invalid stargazer payload: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {"starred_at": format_timestamp(self.starred_at)}


def stargazers_from_api(payload: Any) -> List[Stargazer]:
    """Decode one page of ``application/vnd.github.v3.star+json`` stargazers.

    Raises:
        ResponseDecodeError: If the body is not a list of stargazer objects
    """
    if not isinstance(payload, list):
        raise ResponseDecodeError(f"Expected a list of stargazers, got {type(payload).__name__}")
    return [Stargazer.from_api(item) for item in payload]


def stargazers_to_list(stars: List[Stargazer]) -> List[Dict[str, Any]]:
    return [star.to_dict() for star in stars]
