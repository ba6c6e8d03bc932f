"""
Telegram Bot API adapter.

Each project runs its own bot. Telegram is told, when the webhook is set,
to send a per-project secret in the ``X-Telegram-Bot-Api-Secret-Token``
header; that secret is the only thing identifying the project.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import requests

from channels.models import Platform
from projects.models import Project

from ..exceptions import MediaDownloadError
from .base import (
    REQUEST_TIMEOUT,
    BasePlatformAdapter,
    InboundMessage,
    MediaDownload,
    MediaReference,
    SendMessageResult,
    WebhookAuthResult,
)

if TYPE_CHECKING:
    from django.http import HttpRequest

logger = logging.getLogger(__name__)

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


class TelegramAdapter(BasePlatformAdapter):
    """Adapter for Telegram bots, one bot per project."""

    platform = Platform.TELEGRAM
    connect_hint = "Use the /start link from your project settings to connect."

    @property
    def bot_username(self) -> str:
        return self.project.telegram_bot_username

    @classmethod
    def authenticate(cls, request: HttpRequest) -> WebhookAuthResult:
        secret = request.headers.get(SECRET_HEADER)
        if not secret:
            return WebhookAuthResult.reject("missing_secret")

        project = Project.objects.filter(telegram_webhook_secret=secret).first()
        if project is None:
            # Most likely a deleted project whose webhook is still registered
            return WebhookAuthResult.ignore("unknown_secret")

        return WebhookAuthResult.accept(project)

    def parse_inbound(self, payload: dict[str, Any]) -> list[InboundMessage]:
        message = payload.get("message")
        if not isinstance(message, dict) or "chat" not in message:
            return []

        message_id = str(message.get("message_id", ""))
        text = message.get("text") or message.get("caption") or ""

        media = None
        photos = message.get("photo") or []
        document = message.get("document")
        if photos:
            # Sizes are listed smallest first
            largest = photos[-1]
            media = MediaReference(
                kind="photo",
                file_id=largest["file_id"],
                file_name=f"photo_{message_id}.jpg",
                mime_type="image/jpeg",
                size=largest.get("file_size"),
            )
        elif document:
            media = MediaReference(
                kind="document",
                file_id=document["file_id"],
                file_name=document.get("file_name") or f"document_{message_id}",
                mime_type=document.get("mime_type") or "application/octet-stream",
                size=document.get("file_size"),
            )

        if not text and media is None:
            return []

        sender = message.get("from") or {}
        metadata = {key: sender[key] for key in ("first_name", "last_name", "username") if sender.get(key)}

        return [
            InboundMessage(
                external_user_id=str(message["chat"]["id"]),
                text=text,
                message_id=message_id,
                media=media,
                metadata=metadata,
            )
        ]

    def send_message(self, external_user_id: str, text: str) -> SendMessageResult:
        if not self.project.telegram_bot_token:
            logger.error(f"Telegram bot token not configured for project {self.project.id}")
            return SendMessageResult(success=False, error_message="Bot token not configured")

        url = self._method_url("sendMessage")
        result = self._post(url, {"chat_id": external_user_id, "text": text, "parse_mode": "Markdown"})
        if not result.success:
            # Generated text is not guaranteed to be valid Markdown
            result = self._post(url, {"chat_id": external_user_id, "text": text})

        if result.success:
            sent = result.response_data.get("result") or {}
            result.external_id = str(sent.get("message_id", ""))
        return result

    def send_typing(self, external_user_id: str) -> None:
        if not self.project.telegram_bot_token:
            return
        self._post(self._method_url("sendChatAction"), {"chat_id": external_user_id, "action": "typing"})

    def resolve_media_download(self, media: MediaReference) -> MediaDownload:
        if not self.project.telegram_bot_token:
            raise MediaDownloadError("Telegram bot token not configured")

        try:
            response = requests.get(
                self._method_url("getFile"),
                params={"file_id": media.file_id},
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
            file_path = (response.json().get("result") or {}).get("file_path")
        except (requests.RequestException, ValueError) as e:
            raise MediaDownloadError(f"Failed to fetch Telegram file info: {e}") from e

        if not file_path:
            raise MediaDownloadError("Telegram file_path missing")

        base = self.api_base("TELEGRAM_API_BASE", "https://api.telegram.org")
        return MediaDownload(
            url=f"{base}/file/bot{self.project.telegram_bot_token}/{file_path}",
            mime_type=media.mime_type,
            size=media.size,
        )

    def _method_url(self, method: str) -> str:
        base = self.api_base("TELEGRAM_API_BASE", "https://api.telegram.org")
        return f"{base}/bot{self.project.telegram_bot_token}/{method}"
