"""Centralized configuration.

Credentials and settings live in the drive-manager home directory
(``$DRIVE_MANAGER_HOME``, default ``~/.drive-manager``):
    .env              - settings overrides (DRIVE_MANAGER_CALLBACK_PORT, etc.)
    credentials.json  - Google OAuth client credentials
    token.json        - Google OAuth tokens

The .env file is loaded on import. Variables already present in the
environment take precedence over the file.
"""

import os
from pathlib import Path

from drive_manager.exceptions import ConfigurationError

HOME_DIR = Path(os.environ.get("DRIVE_MANAGER_HOME", Path.home() / ".drive-manager")).expanduser()

# Credential file paths
ENV_FILE = HOME_DIR / ".env"
GOOGLE_CREDENTIALS = HOME_DIR / "credentials.json"
GOOGLE_TOKEN = HOME_DIR / "token.json"

# Must match the redirect URI registered in Google Cloud Console
CALLBACK_PATH = "/auth/google/callback"
DEFAULT_CALLBACK_HOST = "localhost"
DEFAULT_CALLBACK_PORT = 8000
DEFAULT_AUTH_TIMEOUT = 300.0
DEFAULT_PAGE_SIZE = 10


def _load_env_file(env_path: Path) -> dict[str, str]:
    """Load environment variables from a file.

    Args:
        env_path: Path to .env file.

    Returns:
        Dictionary of loaded variables.
    """
    loaded = {}
    if not env_path.exists():
        return loaded

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()

            if (value.startswith('"') and value.endswith('"')) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]

            if key and key not in os.environ:
                os.environ[key] = value
                loaded[key] = value

    return loaded


def _env_number(name: str, default, cast=int):
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


def callback_host() -> str:
    """Host the OAuth callback listener binds to."""
    return os.environ.get("DRIVE_MANAGER_CALLBACK_HOST", DEFAULT_CALLBACK_HOST)


def callback_port() -> int:
    """Port the OAuth callback listener binds to."""
    port = _env_number("DRIVE_MANAGER_CALLBACK_PORT", DEFAULT_CALLBACK_PORT)
    if not 0 <= port <= 65535:
        raise ConfigurationError(f"DRIVE_MANAGER_CALLBACK_PORT must be 0-65535, got {port}")
    return port


def auth_timeout() -> float:
    """Seconds to wait for the OAuth redirect (0 waits forever)."""
    return _env_number("DRIVE_MANAGER_AUTH_TIMEOUT", DEFAULT_AUTH_TIMEOUT, float)


def page_size() -> int:
    """Number of entries requested per Drive list page."""
    return _env_number("DRIVE_MANAGER_PAGE_SIZE", DEFAULT_PAGE_SIZE)


# Auto-load .env from the home directory on import
_loaded = _load_env_file(ENV_FILE)
