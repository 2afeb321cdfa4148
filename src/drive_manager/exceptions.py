"""drive-manager exceptions."""


class DriveManagerError(Exception):
    """Base exception for drive-manager errors."""

    pass


class ConfigurationError(DriveManagerError):
    """Raised when client secrets or settings are missing or invalid."""

    pass


class AuthorizationError(DriveManagerError):
    """Raised when the OAuth authorization flow fails."""

    pass


class TokenCacheError(DriveManagerError):
    """Raised when the OAuth token cannot be written to disk."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Unable to cache OAuth token at {path}: {reason}")


class UsageError(DriveManagerError):
    """Raised for invalid command-line usage."""

    pass


class RemoteCallError(DriveManagerError):
    """Raised when a Drive API call fails."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
