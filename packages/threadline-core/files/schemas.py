"""
Pydantic schemas for file upload API.
"""

from typing import Optional

from pydantic import BaseModel, Field


class UploadUrlRequest(BaseModel):
    """Request schema for reserving an upload URL."""

    project_id: int = Field(..., description="Project the file will belong to")
    file_name: str = Field(..., min_length=1, max_length=255, description="Original file name")
    size_hint: Optional[int] = Field(None, ge=0, description="Expected size in bytes")


class UploadUrlResponse(BaseModel):
    """Response schema with the PUT target for the file bytes."""

    upload_url: str = Field(..., description="URL accepting an HTTP PUT of the file bytes")
    storage_key: str = Field(..., description="Key the bytes will be stored under")


class UploadCompleteResponse(BaseModel):
    """Response schema after the bytes have been stored."""

    storage_key: str = Field(..., description="Key the bytes were stored under")
    size: int = Field(..., description="Stored size in bytes")


class RegisterFileRequest(BaseModel):
    """Request schema for registering an uploaded object."""

    project_id: int = Field(..., description="Project the file belongs to")
    storage_key: str = Field(..., description="Key returned by the upload URL request")
    file_name: str = Field(..., min_length=1, max_length=255)
    mime_type: str = Field("application/octet-stream", description="MIME type of the file")
    size: int = Field(0, ge=0, description="Size in bytes")


class StoredFileResponse(BaseModel):
    """Response schema for a registered file."""

    id: int = Field(..., description="File ID")
    project_id: int = Field(..., description="Project ID")
    file_name: str
    mime_type: str
    size: int
    origin: str
    url: str = Field(..., description="URL the file can be fetched from")
