"""On-disk OAuth token cache.

Tokens are stored in the google-auth "authorized user" layout so the file
stays readable by other Google tooling:

    {"token": ..., "refresh_token": ..., "type": "Bearer",
     "expiry": 1767225600, "scopes": [...]}
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from drive_manager.exceptions import TokenCacheError

logger = logging.getLogger(__name__)


@dataclass
class Token:
    """OAuth access token with optional refresh credential."""

    access_token: str
    refresh_token: str | None = None
    token_type: str = "Bearer"
    expires_at: float | None = None
    scopes: list[str] = field(default_factory=list)

    @classmethod
    def from_authlib(cls, token: dict[str, Any]) -> Token:
        """Build from an Authlib token dict."""
        return cls(
            access_token=token["access_token"],
            refresh_token=token.get("refresh_token"),
            token_type=token.get("token_type", "Bearer"),
            expires_at=token.get("expires_at"),
            scopes=token.get("scope", "").split(),
        )

    def to_authlib(self) -> dict[str, Any]:
        """Convert to the dict shape Authlib sessions expect."""
        token = {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "scope": " ".join(self.scopes),
        }
        if self.refresh_token:
            token["refresh_token"] = self.refresh_token
        if self.expires_at is not None:
            token["expires_at"] = self.expires_at
        return token

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Token:
        """Parse the persisted layout."""
        if not data.get("token"):
            raise ValueError("missing 'token' field")

        expiry = data.get("expiry")
        if isinstance(expiry, str):
            expiry = datetime.fromisoformat(expiry.replace("Z", "+00:00")).timestamp()

        return cls(
            access_token=data["token"],
            refresh_token=data.get("refresh_token"),
            token_type=data.get("type", "Bearer"),
            expires_at=expiry,
            scopes=list(data.get("scopes", [])),
        )

    def to_dict(self, **extra: Any) -> dict[str, Any]:
        """Serialize to the persisted layout."""
        data = {
            "token": self.access_token,
            "refresh_token": self.refresh_token,
            "type": self.token_type,
            "expiry": self.expires_at,
            "scopes": list(self.scopes),
        }
        data.update(extra)
        return data


def load_token(path: str | Path) -> Token | None:
    """Load a token from disk.

    Args:
        path: Token file path.

    Returns:
        The cached Token, or None when the file is missing or unusable.
    """
    path = Path(path)
    if not path.exists():
        logger.info(f"No existing token found at {path}")
        return None

    try:
        with open(path) as f:
            token = Token.from_dict(json.load(f))
    except (OSError, ValueError, TypeError) as e:
        logger.warning(f"Ignoring unusable token file {path}: {e}")
        return None

    logger.info(f"Loaded token from {path}")
    return token


def save_token(path: str | Path, token: Token, **extra: Any) -> None:
    """Write a token to disk, readable by the owner only.

    Args:
        path: Token file path.
        token: Token to persist.
        **extra: Additional informational fields (token_uri, client_id).

    Raises:
        TokenCacheError: If the file cannot be written.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            # O_CREAT's mode only applies to new files
            os.fchmod(f.fileno(), 0o600)
            json.dump(token.to_dict(**extra), f, indent=2)
    except OSError as e:
        raise TokenCacheError(str(path), str(e)) from e

    logger.info(f"Token saved to {path} with scopes: {token.scopes}")
