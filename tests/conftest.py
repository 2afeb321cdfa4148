"""Shared fixtures."""

import json

import pytest


@pytest.fixture
def mock_credentials(tmp_path):
    """Create a mock credentials file."""
    creds = {
        "installed": {
            "client_id": "test-client-id.apps.googleusercontent.com",
            "client_secret": "test-client-secret",
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
            "redirect_uris": ["http://localhost:8000/auth/google/callback"],
        }
    }
    creds_path = tmp_path / "credentials.json"
    with open(creds_path, "w") as f:
        json.dump(creds, f)
    return creds_path


@pytest.fixture
def mock_token(tmp_path):
    """Create a mock token file."""
    token = {
        "token": "test-access-token",
        "refresh_token": "test-refresh-token",
        "token_uri": "https://oauth2.googleapis.com/token",
        "client_id": "test-client-id.apps.googleusercontent.com",
        "scopes": ["https://www.googleapis.com/auth/drive"],
        "type": "Bearer",
        "expiry": "2099-01-01T00:00:00Z",
    }
    token_path = tmp_path / "token.json"
    with open(token_path, "w") as f:
        json.dump(token, f)
    return token_path
