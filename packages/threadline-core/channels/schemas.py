"""
Pydantic schemas for messaging channel and pairing API.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ChannelOut(BaseModel):
    """A messaging channel bound to a project."""

    id: int = Field(..., description="Channel ID")
    platform: str = Field(..., description="Messaging platform")
    external_user_id: str = Field(..., description="Platform user identity")
    project_id: int = Field(..., description="Project ID")
    bound_user_id: Optional[int] = Field(None, description="Internal user who approved the pairing")
    thread_id: str = Field("", description="Thread the channel posts into")
    is_active: bool
    last_message_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    class Config:
        from_attributes = True


class ChannelListResponse(BaseModel):
    channels: List[ChannelOut]
    total: int


class DisconnectRequest(BaseModel):
    channel_id: int = Field(..., description="Channel to deactivate")


class DisconnectResponse(BaseModel):
    success: bool


class PairingRequestOut(BaseModel):
    """A pairing request awaiting redemption."""

    id: int
    platform: str
    external_user_id: str
    pairing_code: str
    status: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    expires_at: datetime

    class Config:
        from_attributes = True


class PairingRequestListResponse(BaseModel):
    requests: List[PairingRequestOut]
    total: int


class RedeemRequest(BaseModel):
    code: str = Field(..., min_length=1, description="Pairing code shown to the external user")
    project_id: Optional[int] = Field(None, description="Restrict redemption to this project")


class ConnectLinksResponse(BaseModel):
    """Links that start the pairing flow from each platform."""

    telegram_url: Optional[str] = Field(None, description="Telegram deep link with /start parameter")
    whatsapp_url: Optional[str] = Field(None, description="WhatsApp click-to-chat link with connect text")
