"""Google OAuth management using Authlib.

This module provides OAuth 2.0 authentication for the Drive API with:
- Interactive authorization through a local redirect listener
- Automatic token refresh with scope preservation
- Secure token storage and loading
- Drive API service creation

Credentials are stored in the drive-manager home directory by default:
    credentials.json - OAuth client credentials
    token.json       - OAuth tokens
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import requests
from authlib.common.errors import AuthlibBaseError
from authlib.integrations.requests_client import OAuth2Session
from google.oauth2.credentials import Credentials as GoogleCredentials
from googleapiclient.discovery import build

from drive_manager import config
from drive_manager.google.exceptions import (
    CredentialsNotFoundError,
    InvalidCredentialsError,
    ScopeMismatchError,
    TokenError,
)
from drive_manager.google.flow import AuthorizationFlow, launch_browser
from drive_manager.google.token_cache import Token, load_token, save_token

logger = logging.getLogger(__name__)


# Drive OAuth scopes
SCOPES = {
    "drive": "https://www.googleapis.com/auth/drive",
    "drive_readonly": "https://www.googleapis.com/auth/drive.readonly",
    "drive_file": "https://www.googleapis.com/auth/drive.file",
    "drive_metadata_readonly": "https://www.googleapis.com/auth/drive.metadata.readonly",
}


@dataclass
class ClientConfig:
    """OAuth client registration loaded from credentials.json."""

    client_id: str
    client_secret: str
    auth_uri: str
    token_uri: str


class GoogleOAuth:
    """Google OAuth management using Authlib.

    Handles the OAuth 2.0 authorization flow, token management, and
    Drive API service creation.

    Example:
        >>> auth = GoogleOAuth(scopes=["drive"])
        >>> if not auth.is_authorized():
        ...     auth.authorize(timeout=300)
        >>> drive_service = auth.build_service("drive", "v3")
    """

    AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"

    def __init__(
        self,
        scopes: list[str] | None = None,
        token_path: str | Path | None = None,
        credentials_path: str | Path | None = None,
        callback_host: str | None = None,
        callback_port: int | None = None,
    ):
        """Initialize Google OAuth.

        Args:
            scopes: List of scope names (e.g., ["drive"]) or full URLs.
                   If None, defaults to ["drive"].
            token_path: Path to store/load tokens. Defaults to ~/.drive-manager/token.json.
            credentials_path: Path to OAuth credentials file. Defaults to ~/.drive-manager/credentials.json.
            callback_host: Host of the local redirect listener.
            callback_port: Port of the local redirect listener.

        Raises:
            CredentialsNotFoundError: If the credentials file is missing.
            InvalidCredentialsError: If the credentials file is malformed.
        """
        self.token_path = Path(token_path) if token_path else config.GOOGLE_TOKEN
        self.credentials_path = (
            Path(credentials_path) if credentials_path else config.GOOGLE_CREDENTIALS
        )
        self.callback_host = callback_host or config.callback_host()
        self.callback_port = callback_port if callback_port is not None else config.callback_port()

        self.required_scopes = self._resolve_scopes(scopes or ["drive"])
        self.client = self._load_client_config()

        self.session = OAuth2Session(
            client_id=self.client.client_id,
            client_secret=self.client.client_secret,
            scope=" ".join(self.required_scopes),
            redirect_uri=self.redirect_uri,
            token=self._load_token(),
            update_token=self._save_token,
            token_endpoint=self.client.token_uri,
            token_endpoint_auth_method="client_secret_post",
        )

        self.last_refresh: datetime | None = None

    @property
    def redirect_uri(self) -> str:
        """Redirect URI registered with Google."""
        return f"http://{self.callback_host}:{self.callback_port}{config.CALLBACK_PATH}"

    def _resolve_scopes(self, scopes: list[str]) -> list[str]:
        """Resolve scope names to full URLs."""
        resolved = []
        for scope in scopes:
            if scope.startswith("https://"):
                resolved.append(scope)
            elif scope in SCOPES:
                resolved.append(SCOPES[scope])
            else:
                raise ValueError(
                    f"Unknown scope: {scope}. Use full URL or one of: {list(SCOPES.keys())}"
                )
        return resolved

    def _load_client_config(self) -> ClientConfig:
        """Load OAuth client credentials from file."""
        if not self.credentials_path.exists():
            raise CredentialsNotFoundError(str(self.credentials_path))

        try:
            with open(self.credentials_path) as f:
                creds = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise InvalidCredentialsError(str(self.credentials_path), str(e)) from e

        # Handle both web and installed app credential formats
        if not isinstance(creds, dict):
            app_creds = None
        elif "installed" in creds:
            app_creds = creds["installed"]
        elif "web" in creds:
            app_creds = creds["web"]
        else:
            app_creds = None

        if not isinstance(app_creds, dict):
            raise InvalidCredentialsError(
                str(self.credentials_path), "expected 'installed' or 'web' key"
            )

        missing = [key for key in ("client_id", "client_secret") if not app_creds.get(key)]
        if missing:
            raise InvalidCredentialsError(
                str(self.credentials_path), f"missing {', '.join(missing)}"
            )

        return ClientConfig(
            client_id=app_creds["client_id"],
            client_secret=app_creds["client_secret"],
            auth_uri=app_creds.get("auth_uri") or self.AUTHORIZE_URL,
            token_uri=app_creds.get("token_uri") or self.TOKEN_URL,
        )

    def _load_token(self) -> dict[str, Any] | None:
        """Load token from storage."""
        token = load_token(self.token_path)
        if token is None:
            return None

        # Validate scopes
        missing = set(self.required_scopes) - set(token.scopes)
        if missing:
            logger.warning(f"Token missing required scopes: {missing}")
            return None

        return token.to_authlib()

    def _save_token(
        self,
        token: dict[str, Any],
        refresh_token: str | None = None,
        access_token: str | None = None,
    ):
        """Save token to storage (Authlib callback)."""
        if access_token:
            token["access_token"] = access_token
        if refresh_token and not token.get("refresh_token"):
            token["refresh_token"] = refresh_token

        # Google omits scope on refresh responses
        if not token.get("scope"):
            token["scope"] = " ".join(self.required_scopes)

        token_scopes = set(token["scope"].split())
        missing = set(self.required_scopes) - token_scopes
        if missing:
            raise ScopeMismatchError(missing)

        save_token(
            self.token_path,
            Token.from_authlib(token),
            token_uri=self.client.token_uri,
            client_id=self.client.client_id,
        )
        self.last_refresh = datetime.now()

    def is_authorized(self) -> bool:
        """Check if we have a token with the required scopes.

        Returns:
            True if authorized with all required scopes, False otherwise.
        """
        if not self.session.token:
            return False

        token_scopes = set(self.session.token.get("scope", "").split())
        return set(self.required_scopes).issubset(token_scopes)

    def get_authorization_url(self, state: str, redirect_uri: str | None = None) -> str:
        """Build the consent page URL.

        Args:
            state: Anti-forgery state token echoed back on the redirect.
            redirect_uri: Overrides the configured redirect URI.

        Returns:
            Authorization URL for the user to visit.
        """
        if redirect_uri:
            self.session.redirect_uri = redirect_uri

        authorization_url, _ = self.session.create_authorization_url(
            self.client.auth_uri,
            state=state,
            access_type="offline",
            prompt="consent",
        )
        return authorization_url

    def fetch_token(self, code: str) -> dict[str, Any]:
        """Exchange an authorization code for a token and persist it.

        Args:
            code: Authorization code from the redirect.

        Returns:
            The fetched OAuth token dict.

        Raises:
            TokenError: If the token endpoint rejects the exchange.
        """
        try:
            token = self.session.fetch_token(
                self.client.token_uri,
                grant_type="authorization_code",
                code=code,
            )
        except (AuthlibBaseError, requests.RequestException) as e:
            raise TokenError(f"Unable to retrieve token from web: {e}") from e

        self._save_token(token)
        return token

    def authorize(self, timeout: float | None = None, open_browser: bool = True) -> dict[str, Any]:
        """Run the interactive authorization flow.

        Args:
            timeout: Seconds to wait for the redirect. Defaults to the
                DRIVE_MANAGER_AUTH_TIMEOUT setting; 0 waits forever.
            open_browser: Open the consent page in a browser.

        Returns:
            The fetched OAuth token dict.

        Raises:
            AuthorizationError: If the flow fails or times out.
            TokenCacheError: If the token cannot be saved.
        """
        logger.info("Requesting token from server")
        flow = AuthorizationFlow(
            authorization_url=self.get_authorization_url,
            exchange=self.fetch_token,
            host=self.callback_host,
            port=self.callback_port,
            path=config.CALLBACK_PATH,
            timeout=config.auth_timeout() if timeout is None else timeout,
            browser=launch_browser if open_browser else None,
        )
        return flow.run()

    def get_credentials(self) -> GoogleCredentials:
        """Get Google Credentials object for API client libraries.

        Returns:
            Google Credentials object with current token.

        Raises:
            TokenError: If not authorized or token refresh fails.
        """
        if not self.is_authorized():
            raise TokenError("Not authorized or missing required scopes")

        # Refresh if expired
        expires_at = self.session.token.get("expires_at")
        if expires_at and expires_at < datetime.now().timestamp():
            logger.info("Token expired, refreshing...")
            refresh_token = self.session.token.get("refresh_token")
            if not refresh_token:
                raise TokenError("Token expired and no refresh token is available")
            try:
                self.session.refresh_token(self.client.token_uri, refresh_token=refresh_token)
            except (AuthlibBaseError, requests.RequestException) as e:
                raise TokenError(f"Failed to refresh token: {e}") from e

        return GoogleCredentials(
            token=self.session.token["access_token"],
            refresh_token=self.session.token.get("refresh_token"),
            token_uri=self.client.token_uri,
            client_id=self.client.client_id,
            client_secret=self.client.client_secret,
            scopes=self.required_scopes,
        )

    def build_service(self, service_name: str = "drive", version: str = "v3"):
        """Build a Google API service with current credentials.

        Args:
            service_name: Name of the service.
            version: API version.

        Returns:
            Google API service object.
        """
        creds = self.get_credentials()
        return build(service_name, version, credentials=creds, cache_discovery=False)
