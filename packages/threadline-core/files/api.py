"""
API endpoints for file uploads.

Uploads are two-step: reserve an upload URL, PUT the bytes to it, then
register the stored object so messages can reference it by file id.
"""

import logging

from django.core.files import File
from django.core.files.storage import default_storage
from django.http import HttpRequest
from ninja import Router
from ninja.errors import HttpError

from accounts.utils import get_accessible_project

from .exceptions import FileRegistrationError, UploadTokenError
from .models import StoredFile
from .schemas import (
    RegisterFileRequest,
    StoredFileResponse,
    UploadCompleteResponse,
    UploadUrlRequest,
    UploadUrlResponse,
)
from .storage import get_storage, read_upload_token

router = Router()
logger = logging.getLogger(__name__)


def _require_project(request: HttpRequest, project_id: int):
    if not request.user.is_authenticated:
        raise HttpError(401, "Authentication required")
    project = get_accessible_project(request.user, project_id)
    if project is None:
        raise HttpError(404, f"Project {project_id} not found or access denied")
    return project


@router.post("/uploads", response=UploadUrlResponse)
def request_upload(request: HttpRequest, payload: UploadUrlRequest):
    """Reserve a storage key and return the URL to PUT the file bytes to."""
    project = _require_project(request, payload.project_id)
    target = get_storage().request_upload_url(project.id, payload.file_name, payload.size_hint)
    return UploadUrlResponse(upload_url=target.upload_url, storage_key=target.storage_key)


@router.put("/uploads/{token}", response=UploadCompleteResponse)
def upload_bytes(request: HttpRequest, token: str):
    """
    Receive the raw bytes for a reserved storage key.

    The signed token is the only credential: it binds the project to the key
    and expires after ``THREADLINE_UPLOAD_URL_MAX_AGE`` seconds. The body is
    streamed into ``default_storage`` in chunks and never read into memory
    as a whole.
    """
    try:
        project_id, storage_key = read_upload_token(token)
    except UploadTokenError as exc:
        logger.warning(f"Rejected upload: {exc}")
        raise HttpError(403, "Invalid or expired upload URL")

    if request.META.get("CONTENT_LENGTH") in ("0", 0):
        raise HttpError(400, "Empty upload")

    if default_storage.exists(storage_key):
        raise HttpError(409, "Upload URL has already been used")

    saved_key = default_storage.save(storage_key, File(request))
    if saved_key != storage_key:
        # A concurrent PUT took the key first and storage picked a free name
        default_storage.delete(saved_key)
        raise HttpError(409, "Upload URL has already been used")

    size = default_storage.size(saved_key)

    logger.info(f"Stored {size} bytes at {saved_key} for project {project_id}")
    return UploadCompleteResponse(storage_key=saved_key, size=size)


@router.post("", response=StoredFileResponse)
def register_file(request: HttpRequest, payload: RegisterFileRequest):
    """Register an uploaded object as a file record."""
    project = _require_project(request, payload.project_id)

    if not payload.storage_key.startswith(f"projects/{project.id}/"):
        raise HttpError(400, "Storage key does not belong to this project")

    storage = get_storage()
    try:
        file_id = storage.register_file(
            project.id,
            payload.storage_key,
            payload.file_name,
            payload.mime_type,
            payload.size,
            request.user,
        )
    except FileRegistrationError as exc:
        raise HttpError(400, str(exc))

    return _file_response(StoredFile.objects.get(id=file_id), storage)


@router.get("/{file_id}", response=StoredFileResponse)
def get_file(request: HttpRequest, file_id: int):
    """Return a registered file and a URL it can be fetched from."""
    if not request.user.is_authenticated:
        raise HttpError(401, "Authentication required")

    stored = StoredFile.objects.for_user(request.user).filter(id=file_id).first()
    if stored is None:
        raise HttpError(404, f"File {file_id} not found or access denied")
    return _file_response(stored, get_storage())


def _file_response(stored: StoredFile, storage) -> StoredFileResponse:
    return StoredFileResponse(
        id=stored.id,
        project_id=stored.project_id,
        file_name=stored.file_name,
        mime_type=stored.mime_type,
        size=stored.size,
        origin=stored.origin,
        url=storage.get_url(stored.storage_key),
    )
