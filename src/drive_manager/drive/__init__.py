"""Google Drive API client with OAuth authentication.

Usage:
    from drive_manager.drive import DriveClient

    # Initialize (authorizes on first use)
    client = DriveClient()

    # List files
    files = client.list_files("files")

    # Upload a file
    file = client.upload_file("/path/to/document.pdf")

    # Download a file
    client.download_file(file.id, "/path/to/download.pdf")

OAuth Setup:
    1. Download OAuth credentials from Google Cloud Console, registering
       http://localhost:8000/auth/google/callback as a redirect URI
    2. Save them as ~/.drive-manager/credentials.json
    3. Run any drive-manager command; the browser flow starts on first use
"""

from __future__ import annotations

from drive_manager.drive.client import DriveClient, DriveFile

__all__ = ["DriveClient", "DriveFile"]
