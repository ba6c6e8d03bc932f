"""
Base class for messaging platform adapters.

Every platform (Telegram, WhatsApp) implements this interface to:
- authenticate incoming webhook requests and find the project they target
- parse webhook payloads into normalized inbound messages
- send text replies and typing indicators back to the platform
- resolve a temporary download for media attached to a message
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

import requests
from django.conf import settings

if TYPE_CHECKING:
    from django.http import HttpRequest

    from projects.models import Project

logger = logging.getLogger(__name__)

# Seconds before a platform API call is abandoned
REQUEST_TIMEOUT = 30


@dataclass
class MediaReference:
    """An attachment as referenced by the platform, before it is downloaded."""

    kind: str
    file_id: str
    file_name: str
    mime_type: str = "application/octet-stream"
    size: int | None = None


@dataclass
class InboundMessage:
    """
    A normalized inbound message.

    Plain data only, so it can be handed to a background task as a dict.
    """

    external_user_id: str
    text: str = ""
    message_id: str = ""
    media: MediaReference | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InboundMessage:
        media = data.get("media")
        return cls(
            external_user_id=str(data["external_user_id"]),
            text=data.get("text") or "",
            message_id=str(data.get("message_id") or ""),
            media=MediaReference(**media) if media else None,
            metadata=data.get("metadata") or {},
        )


@dataclass
class MediaDownload:
    """A temporary, directly fetchable location of an attachment's bytes."""

    url: str
    headers: dict[str, str] = field(default_factory=dict)
    mime_type: str = "application/octet-stream"
    size: int | None = None


class AuthOutcome(str, Enum):
    ACCEPTED = "accepted"
    # Credentials missing or wrong: answer 401
    REJECTED = "rejected"
    # Well-formed but addressed to no known project: acknowledge and drop
    IGNORED = "ignored"


@dataclass
class WebhookAuthResult:
    """Result of authenticating an incoming webhook request."""

    outcome: AuthOutcome
    project: Project | None = None
    reason: str = ""

    @property
    def is_valid(self) -> bool:
        return self.outcome == AuthOutcome.ACCEPTED

    @classmethod
    def accept(cls, project: Project) -> WebhookAuthResult:
        return cls(AuthOutcome.ACCEPTED, project=project)

    @classmethod
    def reject(cls, reason: str) -> WebhookAuthResult:
        return cls(AuthOutcome.REJECTED, reason=reason)

    @classmethod
    def ignore(cls, reason: str) -> WebhookAuthResult:
        return cls(AuthOutcome.IGNORED, reason=reason)


@dataclass
class SendMessageResult:
    """Result of sending an outbound message."""

    success: bool
    external_id: str = ""
    error_message: str = ""
    response_data: dict[str, Any] = field(default_factory=dict)


class BasePlatformAdapter(ABC):
    """
    Abstract base class for platform adapters.

    An adapter instance is bound to one project, whose credentials it uses
    for outbound calls. Authentication runs before the project is known, so
    it is a class method that returns the project it resolved.

    Usage:
        auth = TelegramAdapter.authenticate(request)
        if auth.is_valid:
            adapter = TelegramAdapter(auth.project)
            for inbound in adapter.parse_inbound(payload):
                ...
    """

    platform: str = ""

    # Whether "connect <param>" without a leading slash is a directive
    accepts_bare_connect = False

    # How users of this platform are told to connect
    connect_hint = "Use the link from your project settings to connect."

    def __init__(self, project: Project):
        self.project = project

    @property
    def bot_username(self) -> str:
        """Bot account name that may suffix commands (``/start@name``)."""
        return ""

    @classmethod
    @abstractmethod
    def authenticate(cls, request: HttpRequest) -> WebhookAuthResult:
        """
        Authenticate a webhook request and resolve the project it targets.

        Lookups are keyed by a credential carried on the request and are
        never cached, so rotated or removed credentials take effect at once.
        """

    @abstractmethod
    def parse_inbound(self, payload: dict[str, Any]) -> list[InboundMessage]:
        """
        Parse a webhook payload into inbound messages.

        Updates that carry neither text nor media produce no message.
        """

    @abstractmethod
    def send_message(self, external_user_id: str, text: str) -> SendMessageResult:
        """Send a text reply. Failures are reported in the result, not raised."""

    def send_typing(self, external_user_id: str) -> None:
        """Show a typing indicator, if the platform has one. Best effort."""

    @abstractmethod
    def resolve_media_download(self, media: MediaReference) -> MediaDownload:
        """
        Resolve where an attachment's bytes can be downloaded from.

        Raises:
            MediaDownloadError: If the platform does not serve the file
        """

    def api_base(self, setting_name: str, default: str) -> str:
        return getattr(settings, setting_name, default).rstrip("/")

    def _post(self, url: str, payload: dict[str, Any], headers: dict[str, str] | None = None) -> SendMessageResult:
        """POST JSON to a platform API, reporting failures in the result."""
        try:
            response = requests.post(url, json=payload, headers=headers, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"{self.platform} API call failed for project {self.project.id}: {e}")
            return SendMessageResult(success=False, error_message=str(e))

        try:
            data = response.json() if response.content else {}
        except ValueError:
            data = {}
        return SendMessageResult(success=True, response_data=data)
