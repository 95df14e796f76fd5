"""Environment configuration management for the star history client."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import dotenv_values

from starcharts.api.token_management import parse_github_tokens

logger = logging.getLogger(__name__)


class Environment:
    """Manages environment configuration without global state."""

    def __init__(self, env_file: Optional[str] = None, use_os_environ: bool = True):
        """Initialize the environment configuration.

        Args:
            env_file: Path to .env file (optional)
            use_os_environ: Whether process environment variables override the file
        """
        self._values = {}
        self.env_file_path = None

        # Load from specified .env file or the working directory's
        if env_file:
            self.load_env_file(env_file)
        else:
            default_env_path = Path.cwd() / '.env'
            if default_env_path.exists():
                self.load_env_file(str(default_env_path))

        # Process environment wins over the file
        if use_os_environ:
            self._values.update(os.environ)

        logger.debug("Environment initialized")

    def load_env_file(self, dotenv_path: str) -> bool:
        """Load environment variables from .env file.

        Args:
            dotenv_path: Path to .env file

        Returns:
            True if file was loaded successfully, False otherwise
        """
        env_path = Path(dotenv_path)
        if not env_path.exists():
            logger.warning(f".env file not found at {dotenv_path}")
            return False

        logger.info(f"Loading environment variables from: {dotenv_path}")

        # Load values from .env file without modifying os.environ
        env_values = dotenv_values(dotenv_path=dotenv_path)
        self._values.update({key: value for key, value in env_values.items() if value is not None})
        self.env_file_path = dotenv_path

        if self._values.get("GITHUB_TOKENS"):
            logger.info(f"Loaded GITHUB_TOKENS={'*' * 8}")

        return True

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any):
        """Set an environment variable (does not modify os.environ)."""
        self._values[key] = value

    def get_github_tokens(self) -> List[str]:
        """Get the configured GitHub tokens.

        Returns:
            List of tokens, empty when none are configured
        """
        raw = self.get("GITHUB_TOKENS")
        if not raw:
            logger.warning("GITHUB_TOKENS is not set, requests will be sent anonymously")
            return []

        tokens = parse_github_tokens(raw)
        if not tokens:
            logger.warning("No GitHub tokens found in GITHUB_TOKENS")
        else:
            logger.info(f"Using {len(tokens)} GitHub tokens")
        return tokens

    def as_dict(self) -> Dict[str, str]:
        return dict(self._values)
