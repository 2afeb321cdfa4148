"""Tests for the Drive API client."""

from unittest.mock import MagicMock, patch

import httplib2
import pytest
from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError

from drive_manager.drive import DriveClient, DriveFile
from drive_manager.drive.client import FOLDER_MIME_TYPE
from drive_manager.exceptions import RemoteCallError


def http_error(status, message="boom"):
    content = ('{"error": {"message": "%s"}}' % message).encode()
    return HttpError(httplib2.Response({"status": status}), content)


def file_item(index, mime_type="text/plain"):
    return {"id": f"id-{index}", "name": f"file-{index}.txt", "mimeType": mime_type}


@pytest.fixture
def service():
    return MagicMock()


@pytest.fixture
def client(service):
    return DriveClient(service=service, page_size=10)


class TestListFiles:
    def test_aggregates_pages_in_order(self, client, service):
        """Two pages (10 + 3 items) yield 13 files in fetch order."""
        page1 = {"files": [file_item(i) for i in range(10)], "nextPageToken": "page-2"}
        page2 = {"files": [file_item(i) for i in range(10, 13)]}
        service.files.return_value.list.return_value.execute.side_effect = [page1, page2]

        files = client.list_files("files")

        assert len(files) == 13
        assert [f.id for f in files] == [f"id-{i}" for i in range(13)]

        calls = service.files.return_value.list.call_args_list
        assert len(calls) == 2
        assert calls[0].kwargs["q"] == f"mimeType != '{FOLDER_MIME_TYPE}'"
        assert calls[0].kwargs["pageSize"] == 10
        assert "pageToken" not in calls[0].kwargs
        assert calls[1].kwargs["pageToken"] == "page-2"
        assert "nextPageToken" in calls[0].kwargs["fields"]

    def test_folders_query(self, client, service):
        """The folders kind queries the folder MIME type only."""
        service.files.return_value.list.return_value.execute.return_value = {
            "files": [file_item(1, FOLDER_MIME_TYPE)]
        }

        files = client.list_files("folders")

        assert files[0].is_folder is True
        kwargs = service.files.return_value.list.call_args.kwargs
        assert kwargs["q"] == f"mimeType = '{FOLDER_MIME_TYPE}'"

    def test_all_has_no_query(self, client, service):
        """All entries are listed without a query."""
        service.files.return_value.list.return_value.execute.return_value = {"files": []}

        assert client.list_files("all") == []
        assert "q" not in service.files.return_value.list.call_args.kwargs

    def test_extra_query_is_combined(self, client, service):
        """Additional clauses are ANDed with the kind selector."""
        service.files.return_value.list.return_value.execute.return_value = {"files": []}

        client.list_files("files", query="trashed = false")

        kwargs = service.files.return_value.list.call_args.kwargs
        assert kwargs["q"] == f"mimeType != '{FOLDER_MIME_TYPE}' and trashed = false"

    def test_unknown_kind(self, client):
        """Unknown listing kinds raise ValueError."""
        with pytest.raises(ValueError, match="Unknown listing kind"):
            client.list_files("everything")

    def test_remote_error(self, client, service):
        """API errors keep their HTTP status."""
        service.files.return_value.list.return_value.execute.side_effect = http_error(403)

        with pytest.raises(RemoteCallError) as exc_info:
            client.list_files("all")

        assert exc_info.value.status_code == 403

    @pytest.mark.parametrize(
        "error",
        [
            httplib2.ServerNotFoundError("Unable to find the server at www.googleapis.com"),
            TimeoutError("timed out"),
            RefreshError("invalid_grant"),
        ],
    )
    def test_transport_error(self, client, service, error):
        """Transport and credential errors become RemoteCallError."""
        service.files.return_value.list.return_value.execute.side_effect = error

        with pytest.raises(RemoteCallError, match="Unable to list files") as exc_info:
            client.list_files("all")

        assert exc_info.value.status_code is None
        assert exc_info.value.__cause__ is error

    def test_parse_file_metadata(self, client, service):
        """API fields are parsed into DriveFile."""
        service.files.return_value.list.return_value.execute.return_value = {
            "files": [
                {
                    "id": "abc",
                    "name": "Report.PDF",
                    "mimeType": "application/pdf",
                    "size": "2048",
                    "modifiedTime": "2026-01-01T12:00:00.000Z",
                    "parents": ["root"],
                }
            ]
        }

        (file,) = client.list_files("files")

        assert file.size == 2048
        assert file.name == "Report.PDF"
        assert file.modified_time.year == 2026
        assert file.parents == ["root"]
        assert file.is_folder is False


def fake_downloader(content):
    def factory(fh, request):
        fh.write(content)
        downloader = MagicMock()
        downloader.next_chunk.return_value = (None, True)
        return downloader

    return factory


class TestDownloadFile:
    def test_download_adds_extension_from_mime_type(self, client, service, tmp_path):
        """A bare filename gets an extension from the MIME type."""
        service.files.return_value.get.return_value.execute.return_value = {
            "mimeType": "application/pdf"
        }

        with patch("drive_manager.drive.client.MediaIoBaseDownload", fake_downloader(b"%PDF")):
            path = client.download_file("file-1", tmp_path / "report")

        assert path == tmp_path / "report.pdf"
        assert path.read_bytes() == b"%PDF"
        service.files.return_value.get_media.assert_called_once_with(fileId="file-1")

    def test_download_keeps_explicit_extension(self, client, service, tmp_path):
        """An explicit extension is kept."""
        service.files.return_value.get.return_value.execute.return_value = {
            "mimeType": "application/pdf"
        }

        with patch("drive_manager.drive.client.MediaIoBaseDownload", fake_downloader(b"data")):
            path = client.download_file("file-1", tmp_path / "out" / "report.bin")

        assert path == tmp_path / "out" / "report.bin"
        assert path.read_bytes() == b"data"

    def test_google_doc_is_exported(self, client, service, tmp_path):
        """Google Workspace files are exported."""
        service.files.return_value.get.return_value.execute.return_value = {
            "mimeType": "application/vnd.google-apps.spreadsheet"
        }

        with patch("drive_manager.drive.client.MediaIoBaseDownload", fake_downloader(b"a,b")):
            path = client.download_file("sheet-1", tmp_path / "budget")

        assert path == tmp_path / "budget.csv"
        service.files.return_value.export_media.assert_called_once_with(
            fileId="sheet-1", mimeType="text/csv"
        )

    def test_metadata_error(self, client, service, tmp_path):
        """A failed metadata lookup writes nothing."""
        service.files.return_value.get.return_value.execute.side_effect = http_error(404)

        with pytest.raises(RemoteCallError) as exc_info:
            client.download_file("missing", tmp_path / "x.txt")

        assert exc_info.value.status_code == 404
        assert not (tmp_path / "x.txt").exists()

    def test_transfer_error_removes_partial_file(self, client, service, tmp_path):
        """A failed transfer removes the partial file."""
        service.files.return_value.get.return_value.execute.return_value = {
            "mimeType": "text/plain"
        }
        downloader = MagicMock()
        downloader.next_chunk.side_effect = http_error(500)

        with (
            patch("drive_manager.drive.client.MediaIoBaseDownload", return_value=downloader),
            pytest.raises(RemoteCallError),
        ):
            client.download_file("file-1", tmp_path / "notes.txt")

        assert not (tmp_path / "notes.txt").exists()

    def test_transport_error_during_transfer(self, client, service, tmp_path):
        """Connection errors mid-transfer are wrapped and clean up."""
        service.files.return_value.get.return_value.execute.return_value = {
            "mimeType": "text/plain"
        }
        downloader = MagicMock()
        downloader.next_chunk.side_effect = ConnectionResetError("connection reset")

        with (
            patch("drive_manager.drive.client.MediaIoBaseDownload", return_value=downloader),
            pytest.raises(RemoteCallError, match="download file file-1"),
        ):
            client.download_file("file-1", tmp_path / "notes.txt")

        assert not (tmp_path / "notes.txt").exists()

    def test_metadata_transport_error(self, client, service, tmp_path):
        """Network errors on the metadata lookup are wrapped."""
        service.files.return_value.get.return_value.execute.side_effect = (
            httplib2.ServerNotFoundError("no route")
        )

        with pytest.raises(RemoteCallError, match="get file missing"):
            client.download_file("missing", tmp_path / "x.txt")

    def test_unwritable_destination(self, client, service, tmp_path):
        """Local write failures become RemoteCallError."""
        service.files.return_value.get.return_value.execute.return_value = {
            "mimeType": "text/plain"
        }
        target = tmp_path / "taken.txt"
        target.mkdir()

        with pytest.raises(RemoteCallError, match="Unable to write") as exc_info:
            client.download_file("file-1", target)

        assert isinstance(exc_info.value.__cause__, IsADirectoryError)
        assert target.is_dir()


class TestUploadFile:
    def test_upload(self, client, service, tmp_path):
        """Upload guesses the MIME type and returns the created file."""
        local = tmp_path / "notes.txt"
        local.write_text("hello")
        request = service.files.return_value.create.return_value
        request.next_chunk.return_value = (
            None,
            {"id": "new-id", "name": "notes.txt", "mimeType": "text/plain"},
        )

        with patch("drive_manager.drive.client.MediaFileUpload") as media_cls:
            result = client.upload_file(local)

        assert result == DriveFile(id="new-id", name="notes.txt", mime_type="text/plain")
        media_cls.assert_called_once_with(str(local.resolve()), mimetype="text/plain", resumable=True)
        body = service.files.return_value.create.call_args.kwargs["body"]
        assert body == {"name": "notes.txt", "mimeType": "text/plain"}

    def test_upload_into_folder_with_progress(self, client, service, tmp_path):
        """Chunks are sent until the response arrives."""
        local = tmp_path / "photo.png"
        local.write_bytes(b"\x89PNG")
        status = MagicMock()
        status.progress.return_value = 0.5
        request = service.files.return_value.create.return_value
        request.next_chunk.side_effect = [
            (status, None),
            (None, {"id": "img", "name": "photo.png", "mimeType": "image/png"}),
        ]

        with patch("drive_manager.drive.client.MediaFileUpload"):
            result = client.upload_file(local, folder_id="folder-1")

        assert result.id == "img"
        assert request.next_chunk.call_count == 2
        body = service.files.return_value.create.call_args.kwargs["body"]
        assert body["parents"] == ["folder-1"]
        assert body["mimeType"] == "image/png"

    def test_upload_remote_error(self, client, service, tmp_path):
        """API errors during upload keep their status code."""
        local = tmp_path / "notes.txt"
        local.write_text("hello")
        request = service.files.return_value.create.return_value
        request.next_chunk.side_effect = http_error(403, "quota exceeded")

        with (
            patch("drive_manager.drive.client.MediaFileUpload"),
            pytest.raises(RemoteCallError, match="upload notes.txt") as exc_info,
        ):
            client.upload_file(local)

        assert exc_info.value.status_code == 403

    def test_upload_transport_error(self, client, service, tmp_path):
        """Network errors during upload are wrapped."""
        local = tmp_path / "notes.txt"
        local.write_text("hello")
        request = service.files.return_value.create.return_value
        request.next_chunk.side_effect = httplib2.ServerNotFoundError("no route")

        with (
            patch("drive_manager.drive.client.MediaFileUpload"),
            pytest.raises(RemoteCallError, match="upload notes.txt") as exc_info,
        ):
            client.upload_file(local)

        assert exc_info.value.status_code is None

    def test_upload_missing_local_file(self, client, tmp_path):
        """An unreadable local file is reported."""
        with pytest.raises(RemoteCallError, match="Unable to read"):
            client.upload_file(tmp_path / "absent.txt")


class TestAuthorization:
    def test_authorizes_when_no_token(self):
        """Without a cached token the browser flow runs first."""
        auth = MagicMock()
        auth.is_authorized.return_value = False
        client = DriveClient(auth=auth, page_size=10, auth_timeout=30, open_browser=False)

        client._get_service()

        auth.authorize.assert_called_once_with(timeout=30, open_browser=False)
        auth.build_service.assert_called_once_with("drive", "v3")

    def test_reuses_cached_token(self):
        """A cached token skips authorization and builds the service once."""
        auth = MagicMock()
        auth.is_authorized.return_value = True
        client = DriveClient(auth=auth, page_size=10)

        client._get_service()
        client._get_service()

        auth.authorize.assert_not_called()
        auth.build_service.assert_called_once()
