"""Tests for the media ingestion pipeline."""

from unittest.mock import MagicMock, patch
from urllib.parse import urlsplit

import pytest
import requests
from django.core.files.storage import default_storage
from django.test import Client

from files.exceptions import StorageError
from files.models import FileOrigin, StoredFile
from platform_adapters.adapters import TelegramAdapter
from platform_adapters.adapters.base import MediaDownload, MediaReference
from platform_adapters.exceptions import MediaDownloadError, MediaUploadError
from platform_adapters.media import ingest_media

PHOTO = MediaReference(kind="photo", file_id="large", file_name="photo_8.jpg", mime_type="image/jpeg", size=6)


def download_response(chunks, ok=True, status_code=200):
    response = MagicMock()
    response.ok = ok
    response.status_code = status_code
    response.iter_content.return_value = iter(chunks)
    return response


def put_through_client(url, data=None, headers=None, timeout=None):
    """Deliver a streamed PUT to the upload endpoint through the test client."""
    body = b"".join(data)
    response = Client().put(urlsplit(url).path, data=body, content_type=headers["Content-Type"])
    result = MagicMock(status_code=response.status_code)
    if response.status_code >= 400:
        result.raise_for_status.side_effect = requests.HTTPError(f"{response.status_code}")
    return result


@pytest.fixture
def adapter(project):
    adapter = TelegramAdapter(project)
    download = MediaDownload(url="https://api.telegram.org/file/bot123456:TEST-TOKEN/photos/file_1.jpg", mime_type="image/jpeg")
    with patch.object(TelegramAdapter, "resolve_media_download", return_value=download):
        yield adapter


@pytest.mark.django_db
class TestIngestMedia:
    """Tests for ingest_media."""

    def test_streams_into_storage_and_registers(self, adapter, project, user):
        with patch("platform_adapters.media.requests.get", return_value=download_response([b"abc", b"def"])) as get, \
                patch("platform_adapters.media.requests.put", side_effect=put_through_client) as put:
            file_id = ingest_media(adapter, PHOTO, project, user)

        assert get.call_args.kwargs["stream"] is True
        assert put.call_args.args[0].startswith("http://testserver/api/files/uploads/")

        stored = StoredFile.objects.get(id=file_id)
        assert stored.project == project
        assert stored.size == 6
        assert stored.mime_type == "image/jpeg"
        assert stored.origin == FileOrigin.TELEGRAM
        assert stored.created_by == user
        with default_storage.open(stored.storage_key) as fh:
            assert fh.read() == b"abcdef"

    def test_download_connection_error(self, adapter, project, user):
        with patch("platform_adapters.media.requests.get", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(MediaDownloadError):
                ingest_media(adapter, PHOTO, project, user)

        assert not StoredFile.objects.exists()

    def test_download_http_error(self, adapter, project, user):
        with patch("platform_adapters.media.requests.get", return_value=download_response([], ok=False, status_code=404)):
            with pytest.raises(MediaDownloadError):
                ingest_media(adapter, PHOTO, project, user)

    def test_interrupted_download(self, adapter, project, user):
        def broken_chunks():
            yield b"abc"
            raise requests.exceptions.ChunkedEncodingError("connection reset")

        response = download_response([])
        response.iter_content.return_value = broken_chunks()

        with patch("platform_adapters.media.requests.get", return_value=response), \
                patch("platform_adapters.media.requests.put", side_effect=put_through_client):
            with pytest.raises(MediaDownloadError):
                ingest_media(adapter, PHOTO, project, user)

        assert not StoredFile.objects.exists()

    def test_upload_failure(self, adapter, project, user):
        def failing_put(url, data=None, headers=None, timeout=None):
            raise requests.ConnectionError("storage unavailable")

        with patch("platform_adapters.media.requests.get", return_value=download_response([b"abc"])), \
                patch("platform_adapters.media.requests.put", side_effect=failing_put):
            with pytest.raises(MediaUploadError):
                ingest_media(adapter, PHOTO, project, user)

        assert not StoredFile.objects.exists()

    def test_uses_given_storage(self, adapter, project, user):
        storage = MagicMock()
        storage.request_upload_url.return_value = MagicMock(upload_url="https://storage.example/put", storage_key="k")
        storage.register_file.return_value = 321

        def consume_put(url, data=None, headers=None, timeout=None):
            b"".join(data)
            return MagicMock()

        with patch("platform_adapters.media.requests.get", return_value=download_response([b"abc"])), \
                patch("platform_adapters.media.requests.put", side_effect=consume_put):
            file_id = ingest_media(adapter, PHOTO, project, user, storage=storage)

        assert file_id == 321
        storage.register_file.assert_called_once_with(
            project.id, "k", "photo_8.jpg", "image/jpeg", 3, user, origin="telegram"
        )

    def test_empty_download_never_reaches_storage(self, adapter, project, user):
        storage = MagicMock()

        with patch("platform_adapters.media.requests.get", return_value=download_response([b""])), \
                patch("platform_adapters.media.requests.put") as put:
            with pytest.raises(MediaDownloadError):
                ingest_media(adapter, PHOTO, project, user, storage=storage)

        put.assert_not_called()
        storage.request_upload_url.assert_not_called()

    def test_storage_refusing_upload_target(self, adapter, project, user):
        storage = MagicMock()
        storage.request_upload_url.side_effect = StorageError("bucket unavailable")

        with patch("platform_adapters.media.requests.get", return_value=download_response([b"abc"])), \
                patch("platform_adapters.media.requests.put") as put:
            with pytest.raises(MediaUploadError):
                ingest_media(adapter, PHOTO, project, user, storage=storage)

        put.assert_not_called()

    def test_misconfigured_storage_backend(self, adapter, project, user, settings):
        settings.THREADLINE_STORAGE_BACKEND = "files.storage.NoSuchStorage"

        with patch("platform_adapters.media.requests.get", return_value=download_response([b"abc"])):
            with pytest.raises(MediaUploadError):
                ingest_media(adapter, PHOTO, project, user)
