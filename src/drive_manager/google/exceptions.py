"""Google authentication exceptions."""

from drive_manager.exceptions import AuthorizationError, ConfigurationError


class CredentialsNotFoundError(ConfigurationError):
    """Raised when OAuth credentials file is not found."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Credentials file not found at {path}. "
            "Please download OAuth credentials from Google Cloud Console."
        )


class InvalidCredentialsError(ConfigurationError):
    """Raised when the OAuth credentials file cannot be parsed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Unable to parse credentials file {path}: {reason}")


class TokenError(AuthorizationError):
    """Raised when there's an issue with the OAuth token."""

    pass


class AuthorizationTimeout(AuthorizationError):
    """Raised when no authorization code arrives in time."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"No authorization code received within {timeout:g} seconds")


class ScopeMismatchError(AuthorizationError):
    """Raised when token scopes don't match required scopes."""

    def __init__(self, missing_scopes: set[str]):
        self.missing_scopes = missing_scopes
        super().__init__(f"Token missing required scopes: {missing_scopes}")
