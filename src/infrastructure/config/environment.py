"""Environment variable loading from .env files with precedence support."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Environment overrides recognized by the settings loader
ENV_OVERRIDES = {
    "DUPEWARDEN_CONFIG": "Configuration file path (defaults to dupewarden.toml)",
    "DUPEWARDEN_LEDGER_DIR": "Root directory for per-room ledgers (defaults to var/ledgers)",
    "DUPEWARDEN_EXIFTOOL": "exiftool executable name or path (defaults to exiftool)",
    "DUPEWARDEN_POOL_LIMIT": "Number of uploads processed concurrently (defaults to 2)",
}


def load_environment_variables(dotenv_path: Path | str | None = None) -> None:
    """
    Load environment variables from .env file with automatic detection.

    Environment variables from system environment take precedence over .env file values.
    This function uses python-dotenv's load_dotenv() which respects existing environment
    variables by default (override=False).

    Args:
        dotenv_path: Optional path to .env file. If None, searches for .env file in:
                     - Current working directory
                     - Parent directories (up to 3 levels)
    """
    if dotenv_path is None:
        current = Path.cwd()
        search_paths = [
            current / ".env",
            current.parent / ".env",
            current.parent.parent / ".env",
            current.parent.parent.parent / ".env",
        ]

        for path in search_paths:
            if path.exists():
                dotenv_path = path
                logger.debug(f"Loading .env file from: {path}")
                break

        if dotenv_path is None:
            load_dotenv(override=False)
            return

    dotenv_path = Path(dotenv_path)
    if dotenv_path.exists():
        load_dotenv(dotenv_path, override=False)
        logger.debug(f"Loaded .env file from: {dotenv_path}")
    else:
        logger.debug(f".env file not found at: {dotenv_path}")


def get_env(key: str, default: str | None = None) -> str | None:
    """
    Get environment variable value.

    Checks system environment variables (which take precedence over .env file).

    Args:
        key: Environment variable name
        default: Default value if not found

    Returns:
        Environment variable value or default
    """
    return os.getenv(key, default)


def get_env_int(key: str, default: int | None = None) -> int | None:
    """
    Get integer environment variable.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Integer value or default

    Raises:
        ValueError: If the variable is set but is not an integer
    """
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError:
        raise ValueError(f"Environment variable {key} must be an integer, got '{value}'") from None


# Auto-load on import (common pattern for environment modules)
load_environment_variables()
