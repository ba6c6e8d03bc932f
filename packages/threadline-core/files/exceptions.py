"""
Exceptions for the storage collaborator.
"""


class StorageError(Exception):
    """Base exception for all storage operations."""

    pass


class UploadTokenError(StorageError):
    """Upload token is malformed, tampered with or expired."""

    pass


class FileRegistrationError(StorageError):
    """Failed to register an uploaded object as a file record."""

    pass


class ConfigurationError(StorageError):
    """Storage backend could not be loaded."""

    pass
