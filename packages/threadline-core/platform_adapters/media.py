"""
Media ingestion pipeline.

Copies an attachment from a messaging platform into project storage:

1. resolve a temporary download from the platform adapter and open it
2. reserve an upload target with the storage collaborator once the first
   bytes have arrived
3. stream the bytes from the download straight into an HTTP PUT
4. register the stored object as a file record

Bytes are passed through in chunks and counted on the way, never held in
memory as a whole.
"""

from __future__ import annotations

import logging

import requests

from files.exceptions import StorageError
from files.storage import ObjectStorage, get_storage

from .adapters.base import BasePlatformAdapter, MediaReference
from .exceptions import MediaDownloadError, MediaUploadError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

# Seconds without progress before a transfer is abandoned
TRANSFER_TIMEOUT = 60


class _CountingStream:
    """Iterate a download's chunks while counting the bytes that pass."""

    def __init__(self, response: requests.Response):
        self.response = response
        self.total = 0
        self._chunks = self._read()
        self._first = None

    def _read(self):
        try:
            for chunk in self.response.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    self.total += len(chunk)
                    yield chunk
        except requests.RequestException as e:
            raise MediaDownloadError(f"Download interrupted after {self.total} bytes: {e}") from e

    def prime(self) -> bool:
        """Read ahead to the first chunk; False when the download is empty."""
        self._first = next(self._chunks, None)
        return self._first is not None

    def __iter__(self):
        if self._first is not None:
            first, self._first = self._first, None
            yield first
        yield from self._chunks


def ingest_media(
    adapter: BasePlatformAdapter,
    media: MediaReference,
    project,
    actor,
    *,
    storage: ObjectStorage | None = None,
) -> int:
    """
    Copy a platform attachment into project storage.

    Args:
        adapter: Adapter of the platform the attachment came from
        media: Attachment reference from the inbound message
        project: Project the file belongs to
        actor: User recorded as the file's creator
        storage: Storage collaborator (configured backend by default)

    Returns:
        ID of the registered file record

    Raises:
        MediaDownloadError: If the platform does not serve the bytes
        MediaUploadError: If storage rejects the bytes or the file record
    """
    download = adapter.resolve_media_download(media)
    mime_type = download.mime_type or media.mime_type

    try:
        source = requests.get(download.url, headers=download.headers, stream=True, timeout=TRANSFER_TIMEOUT)
    except requests.RequestException as e:
        raise MediaDownloadError(f"Failed to download {media.kind} {media.file_id}: {e}") from e

    with source:
        if not source.ok:
            raise MediaDownloadError(
                f"Failed to download {media.kind} {media.file_id}: HTTP {source.status_code}"
            )

        # Nothing is reserved or written in storage for an empty download
        stream = _CountingStream(source)
        if not stream.prime():
            raise MediaDownloadError(f"Platform returned an empty file for {media.kind} {media.file_id}")

        try:
            storage = storage or get_storage()
            target = storage.request_upload_url(
                project.id, media.file_name, size_hint=download.size or media.size
            )
        except StorageError as e:
            raise MediaUploadError(f"Storage refused an upload for {media.file_name}: {e}") from e

        try:
            upload = requests.put(
                target.upload_url,
                data=iter(stream),
                headers={"Content-Type": mime_type},
                timeout=TRANSFER_TIMEOUT,
            )
            upload.raise_for_status()
        except requests.RequestException as e:
            raise MediaUploadError(f"Failed to upload {media.file_name} to storage: {e}") from e

    try:
        file_id = storage.register_file(
            project.id,
            target.storage_key,
            media.file_name,
            mime_type,
            stream.total,
            actor,
            origin=adapter.platform,
        )
    except StorageError as e:
        raise MediaUploadError(str(e)) from e

    logger.info(
        f"Ingested {adapter.platform} {media.kind} as file {file_id} "
        f"({stream.total} bytes) for project {project.id}"
    )
    return file_id
