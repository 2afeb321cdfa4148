"""Google OAuth authentication for the Drive API."""

from drive_manager.google.exceptions import (
    AuthorizationTimeout,
    CredentialsNotFoundError,
    InvalidCredentialsError,
    ScopeMismatchError,
    TokenError,
)
from drive_manager.google.oauth import GoogleOAuth

__all__ = [
    "GoogleOAuth",
    "AuthorizationTimeout",
    "CredentialsNotFoundError",
    "InvalidCredentialsError",
    "TokenError",
    "ScopeMismatchError",
]
