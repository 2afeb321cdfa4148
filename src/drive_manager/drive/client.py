"""Google Drive API client implementation."""

from __future__ import annotations

import contextlib
import logging
import mimetypes
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import httplib2
from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload, MediaIoBaseDownload

from drive_manager import config
from drive_manager.exceptions import RemoteCallError
from drive_manager.google import GoogleOAuth

logger = logging.getLogger(__name__)


@dataclass
class DriveFile:
    """Represents a Google Drive file."""

    id: str
    name: str
    mime_type: str
    size: int | None = None
    created_time: datetime | None = None
    modified_time: datetime | None = None
    parents: list[str] | None = None
    web_view_link: str | None = None
    is_folder: bool = False


# Common MIME types
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
GOOGLE_APPS_MIME_PREFIX = "application/vnd.google-apps."
GOOGLE_DOC_MIME_TYPE = "application/vnd.google-apps.document"
GOOGLE_SHEET_MIME_TYPE = "application/vnd.google-apps.spreadsheet"
GOOGLE_SLIDES_MIME_TYPE = "application/vnd.google-apps.presentation"

EXPORT_MIME_TYPES = {
    GOOGLE_DOC_MIME_TYPE: "application/pdf",
    GOOGLE_SHEET_MIME_TYPE: "text/csv",
    GOOGLE_SLIDES_MIME_TYPE: "application/pdf",
}

FILE_FIELDS = "id, name, mimeType, size, createdTime, modifiedTime, parents, webViewLink"

# Listing selectors accepted by list_files
LIST_QUERIES = {
    "files": f"mimeType != '{FOLDER_MIME_TYPE}'",
    "folders": f"mimeType = '{FOLDER_MIME_TYPE}'",
    "all": None,
}

# Raised by a Drive request once it is sent over the wire
REMOTE_ERRORS = (HttpError, httplib2.HttpLib2Error, GoogleAuthError, OSError)


def _remote_error(action: str, error: Exception) -> RemoteCallError:
    status = getattr(getattr(error, "resp", None), "status", None)
    return RemoteCallError(f"Unable to {action}: {error}", int(status) if status else None)


class DriveClient:
    """Google Drive API client with OAuth authentication.

    Usage:
        client = DriveClient()

        # List files (all pages)
        files = client.list_files("files")

        # Upload a file
        file = client.upload_file("/path/to/document.pdf")

        # Download a file
        client.download_file(file.id, "/path/to/download")

    Note:
        The first call runs the browser authorization flow if no cached
        token is available.
    """

    def __init__(
        self,
        auth: GoogleOAuth | None = None,
        service: Any = None,
        page_size: int | None = None,
        auth_timeout: float | None = None,
        open_browser: bool = True,
    ) -> None:
        """Initialize Drive client.

        Args:
            auth: OAuth manager. Created with default paths if not provided.
            service: Prebuilt Drive v3 service (skips authorization).
            page_size: Entries requested per list page.
            auth_timeout: Seconds to wait for the OAuth redirect.
            open_browser: Open the consent page in a browser.
        """
        self._auth = auth
        self._service = service
        self.page_size = page_size or config.page_size()
        self._auth_timeout = auth_timeout
        self._open_browser = open_browser

    def _get_service(self) -> Any:
        """Get or create Drive API service, authorizing if needed."""
        if self._service is None:
            if self._auth is None:
                self._auth = GoogleOAuth(scopes=["drive"])
            if not self._auth.is_authorized():
                self._auth.authorize(timeout=self._auth_timeout, open_browser=self._open_browser)
            self._service = self._auth.build_service("drive", "v3")
        return self._service

    # =========================================================================
    # Listing
    # =========================================================================

    def list_files(self, kind: str = "all", query: str | None = None) -> list[DriveFile]:
        """List files and/or folders, following every result page.

        Args:
            kind: "files", "folders", or "all".
            query: Additional Drive query clause.

        Returns:
            DriveFile objects in the order the pages were returned.

        Raises:
            ValueError: If kind is unknown.
            RemoteCallError: If a page request fails.
        """
        if kind not in LIST_QUERIES:
            raise ValueError(f"Unknown listing kind: {kind}. Use one of: {list(LIST_QUERIES)}")

        query_parts = [part for part in (LIST_QUERIES[kind], query) if part]
        return list(self.iter_files(" and ".join(query_parts) or None))

    def iter_files(self, query: str | None = None):
        """Yield files page by page until no continuation token remains."""
        service = self._get_service()
        page_token: str | None = None
        fetched = 0

        while True:
            kwargs: dict[str, Any] = {
                "pageSize": self.page_size,
                "fields": f"nextPageToken, files({FILE_FIELDS})",
            }
            if query:
                kwargs["q"] = query
            if page_token:
                kwargs["pageToken"] = page_token

            try:
                results = service.files().list(**kwargs).execute()
            except REMOTE_ERRORS as e:
                raise _remote_error("list files", e) from e

            items = results.get("files", [])
            fetched += len(items)
            logger.info(f"Number of files: {fetched}")

            for item in items:
                yield self._parse_file(item)

            page_token = results.get("nextPageToken")
            if not page_token:
                break

    # =========================================================================
    # Transfers
    # =========================================================================

    def upload_file(
        self,
        file_path: str | Path,
        name: str | None = None,
        folder_id: str | None = None,
        mime_type: str | None = None,
    ) -> DriveFile:
        """Upload a file to Drive.

        Args:
            file_path: Local path to the file to upload.
            name: Name for the file in Drive. Defaults to the local file name.
            folder_id: Parent folder ID (optional).
            mime_type: MIME type (guessed from the extension if not provided).

        Returns:
            Created DriveFile.

        Raises:
            RemoteCallError: If the upload fails.
        """
        service = self._get_service()
        file_path = Path(file_path).resolve()

        if mime_type is None:
            mime_type, _ = mimetypes.guess_type(file_path.name)
            if mime_type is None:
                mime_type = "application/octet-stream"

        metadata: dict[str, Any] = {"name": name or file_path.name, "mimeType": mime_type}
        if folder_id:
            metadata["parents"] = [folder_id]

        try:
            media = MediaFileUpload(str(file_path), mimetype=mime_type, resumable=True)
        except OSError as e:
            raise RemoteCallError(f"Unable to read {file_path}: {e}") from e

        request = service.files().create(body=metadata, media_body=media, fields=FILE_FIELDS)

        response = None
        try:
            while response is None:
                status, response = request.next_chunk()
                if status:
                    logger.info(f"Uploaded {int(status.progress() * 100)}%")
        except REMOTE_ERRORS as e:
            raise _remote_error(f"upload {file_path.name}", e) from e

        return self._parse_file(response)

    def download_file(self, file_id: str, output_path: str | Path) -> Path:
        """Download a file from Drive.

        Google Workspace documents are exported (Docs and Slides as PDF,
        Sheets as CSV). When ``output_path`` has no extension, one is derived
        from the downloaded content's MIME type.

        Args:
            file_id: Drive file ID.
            output_path: Local path to save the file.

        Returns:
            Path the file was written to.

        Raises:
            RemoteCallError: If the download fails or the file cannot be written.
        """
        service = self._get_service()
        output_path = Path(output_path)

        try:
            file_meta = service.files().get(fileId=file_id, fields="mimeType").execute()
        except REMOTE_ERRORS as e:
            raise _remote_error(f"get file {file_id}", e) from e

        mime_type = file_meta.get("mimeType", "")
        if mime_type.startswith(GOOGLE_APPS_MIME_PREFIX):
            mime_type = EXPORT_MIME_TYPES.get(mime_type, "application/pdf")
            request = service.files().export_media(fileId=file_id, mimeType=mime_type)
        else:
            request = service.files().get_media(fileId=file_id)

        if not output_path.suffix:
            extension = mimetypes.guess_extension(mime_type) if mime_type else None
            if extension:
                output_path = output_path.with_name(output_path.name + extension)

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            fh = open(output_path, "wb")
        except OSError as e:
            raise RemoteCallError(f"Unable to write {output_path}: {e}") from e

        try:
            with fh:
                downloader = MediaIoBaseDownload(fh, request)
                done = False
                while not done:
                    status, done = downloader.next_chunk()
                    if status:
                        logger.info(f"Downloaded {int(status.progress() * 100)}%")
        except REMOTE_ERRORS as e:
            with contextlib.suppress(OSError):
                output_path.unlink()
            raise _remote_error(f"download file {file_id}", e) from e

        return output_path

    def _parse_file(self, data: dict) -> DriveFile:
        """Parse file from API response."""
        created_time = None
        if data.get("createdTime"):
            with contextlib.suppress(ValueError):
                created_time = datetime.fromisoformat(data["createdTime"].replace("Z", "+00:00"))

        modified_time = None
        if data.get("modifiedTime"):
            with contextlib.suppress(ValueError):
                modified_time = datetime.fromisoformat(data["modifiedTime"].replace("Z", "+00:00"))

        size = None
        if data.get("size"):
            with contextlib.suppress(ValueError):
                size = int(data["size"])

        mime_type = data.get("mimeType", "")

        return DriveFile(
            id=data["id"],
            name=data.get("name", ""),
            mime_type=mime_type,
            size=size,
            created_time=created_time,
            modified_time=modified_time,
            parents=data.get("parents"),
            web_view_link=data.get("webViewLink"),
            is_folder=mime_type == FOLDER_MIME_TYPE,
        )
