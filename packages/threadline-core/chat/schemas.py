"""
Pydantic schemas for thread API.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class SendMessageRequest(BaseModel):
    """Request schema for posting a web chat message."""

    project_id: int = Field(..., description="Project the thread belongs to")
    thread_id: Optional[str] = Field(
        None, description="Legacy or native thread id (defaults to the project thread)"
    )
    prompt: str = Field(..., min_length=1, description="User message text")
    file_ids: List[int] = Field(default_factory=list, description="Attached StoredFile ids")


class SendMessageResponse(BaseModel):
    """Response schema after dispatching a generation."""

    thread_id: str = Field(..., description="Thread id as addressed by the client")
    native_thread_id: str = Field(..., description="Engine thread id")
    message_id: int = Field(..., description="ID of the in-progress assistant message")


class SyncRequest(BaseModel):
    """Request schema for the streaming sync query."""

    cursor: Optional[str] = Field(None, description="Continue cursor from the previous page")
    num_items: int = Field(50, ge=1, le=200, description="Maximum committed messages to return")
    stream_cursors: Dict[int, int] = Field(
        default_factory=dict, description="Next delta seq wanted, keyed by message id"
    )


class MessageOut(BaseModel):
    id: int
    role: str
    content: str
    status: str
    order: int
    origin: str
    file_ids: List[int] = Field(default_factory=list)
    created_at: datetime


class DeltaOut(BaseModel):
    seq: int
    text: str


class StreamOut(BaseModel):
    message_id: int
    status: str
    deltas: List[DeltaOut] = Field(default_factory=list)
    next_seq: int


class SyncMetaOut(BaseModel):
    requested_thread_id: str
    native_thread_id: Optional[str] = None
    mapping_found: bool
    waiting: bool = False
    error: Optional[str] = None


class SyncResponse(BaseModel):
    """Committed page plus live stream state for a thread."""

    page: List[MessageOut]
    is_done: bool
    continue_cursor: str
    streams: List[StreamOut]
    meta: SyncMetaOut


class ThreadInfoResponse(BaseModel):
    exists: bool = Field(..., description="Whether a native thread exists for the id")
    native_thread_id: Optional[str] = None
    is_legacy_id: bool
    has_mapping: bool


class ProjectThreadResponse(BaseModel):
    thread_id: str = Field(..., description="Legacy id of the project's primary thread")
    native_thread_id: Optional[str] = Field(None, description="Engine id once the thread has been written to")


class AbortResponse(BaseModel):
    success: bool
    message: str
