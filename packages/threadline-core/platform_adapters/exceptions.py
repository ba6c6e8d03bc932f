"""
Exceptions for messaging platform adapters.
"""


class PlatformAdapterError(Exception):
    """Base exception for platform adapter errors."""
    pass


class AdapterNotConfiguredError(PlatformAdapterError):
    """Raised when a project lacks the credentials a platform needs."""
    pass


class MediaIngestionError(PlatformAdapterError):
    """Raised when an inbound attachment cannot be copied into storage."""
    pass


class MediaDownloadError(MediaIngestionError):
    """Raised when the platform refuses or fails to serve an attachment."""
    pass


class MediaUploadError(MediaIngestionError):
    """Raised when the attachment cannot be written to storage or registered."""
    pass
