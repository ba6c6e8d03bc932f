"""
Storage collaborator contract.

Callers never touch object storage directly: they ask for an upload target,
stream bytes to its URL, then register the stored object as a file record.

Example usage:
    storage = get_storage()
    target = storage.request_upload_url(project.id, "photo.jpg", size_hint=2048)
    requests.put(target.upload_url, data=chunks, timeout=60)
    file_id = storage.register_file(
        project.id, target.storage_key, "photo.jpg", "image/jpeg", 2048, user
    )
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass

from django.conf import settings
from django.core import signing
from django.core.files.storage import default_storage
from django.db import IntegrityError
from django.utils.module_loading import import_string
from django.utils.text import get_valid_filename

from .exceptions import ConfigurationError, FileRegistrationError, UploadTokenError

logger = logging.getLogger(__name__)

UPLOAD_TOKEN_SALT = "files.upload"


@dataclass
class UploadTarget:
    """Where to PUT the bytes of a new object, and the key they will land under."""

    upload_url: str
    storage_key: str


class ObjectStorage(ABC):
    """Abstract interface for object storage backends."""

    @abstractmethod
    def request_upload_url(
        self,
        project_id: int,
        file_name: str,
        size_hint: int | None = None,
    ) -> UploadTarget:
        """
        Reserve a storage key and return a URL accepting an HTTP PUT of the bytes.

        Args:
            project_id: Project the object will belong to
            file_name: Original file name (used for the key suffix)
            size_hint: Expected size in bytes, if known

        Returns:
            UploadTarget with the upload URL and the reserved storage key
        """

    @abstractmethod
    def register_file(
        self,
        project_id: int,
        storage_key: str,
        file_name: str,
        mime_type: str,
        size: int,
        actor,
        origin: str = "web",
    ) -> int:
        """Create the file record for an uploaded object and return its id."""

    @abstractmethod
    def get_url(self, storage_key: str) -> str:
        """Return a URL the stored object can be fetched from."""


def build_storage_key(project_id: int, file_name: str) -> str:
    safe_name = get_valid_filename(file_name) or "upload"
    return f"projects/{project_id}/{uuid.uuid4().hex}/{safe_name}"


def make_upload_token(project_id: int, storage_key: str) -> str:
    return signing.dumps({"p": project_id, "k": storage_key}, salt=UPLOAD_TOKEN_SALT)


def read_upload_token(token: str, max_age: int | None = None) -> tuple[int, str]:
    """
    Verify an upload token and return ``(project_id, storage_key)``.

    Raises:
        UploadTokenError: If the token is tampered with, malformed or expired
    """
    if max_age is None:
        max_age = getattr(settings, "THREADLINE_UPLOAD_URL_MAX_AGE", 900)
    try:
        data = signing.loads(token, salt=UPLOAD_TOKEN_SALT, max_age=max_age)
    except signing.SignatureExpired as exc:
        raise UploadTokenError("Upload URL has expired") from exc
    except signing.BadSignature as exc:
        raise UploadTokenError("Invalid upload token") from exc

    try:
        return int(data["p"]), str(data["k"])
    except (KeyError, TypeError, ValueError) as exc:
        raise UploadTokenError("Malformed upload token") from exc


class SignedUploadStorage(ObjectStorage):
    """
    Default backend on top of Django's ``default_storage``.

    Upload URLs point at this service's own ``PUT /api/files/uploads/{token}``
    endpoint. The token is a ``django.core.signing`` payload binding the
    project to the reserved key, so clients cannot pick arbitrary keys.
    """

    def request_upload_url(self, project_id, file_name, size_hint=None):
        storage_key = build_storage_key(project_id, file_name)
        token = make_upload_token(project_id, storage_key)
        base_url = getattr(settings, "THREADLINE_BASE_URL", "").rstrip("/")
        upload_url = f"{base_url}/api/files/uploads/{token}"

        logger.debug(
            f"Issued upload URL for project {project_id} key={storage_key} size_hint={size_hint}"
        )
        return UploadTarget(upload_url=upload_url, storage_key=storage_key)

    def register_file(
        self,
        project_id,
        storage_key,
        file_name,
        mime_type,
        size,
        actor,
        origin="web",
    ):
        from projects.models import Project

        from .models import StoredFile

        project = Project.objects.filter(id=project_id).first()
        if project is None:
            raise FileRegistrationError(f"Project {project_id} not found")

        try:
            stored = StoredFile.objects.create(
                project=project,
                organization_id=project.organization_id,
                storage_key=storage_key,
                file_name=file_name,
                mime_type=mime_type or "application/octet-stream",
                size=size or 0,
                origin=origin,
                created_by=actor if actor is not None and actor.is_authenticated else None,
            )
        except IntegrityError as exc:
            raise FileRegistrationError(f"Storage key {storage_key} is already registered") from exc

        logger.info(f"Registered file {stored.id} ({file_name}, {size} bytes) for project {project_id}")
        return stored.id

    def get_url(self, storage_key):
        return default_storage.url(storage_key)


def get_storage() -> ObjectStorage:
    """
    Return the configured storage backend.

    ``THREADLINE_STORAGE_BACKEND`` holds a dotted path to an ``ObjectStorage``
    subclass; the signed-upload backend is used when unset.
    """
    backend_path = getattr(settings, "THREADLINE_STORAGE_BACKEND", None) or "files.storage.SignedUploadStorage"
    try:
        backend_class = import_string(backend_path)
    except ImportError as exc:
        raise ConfigurationError(f"Cannot import storage backend '{backend_path}'") from exc

    if not issubclass(backend_class, ObjectStorage):
        raise ConfigurationError(
            f"Storage backend must be a subclass of ObjectStorage, got {backend_class.__name__}"
        )
    return backend_class()
