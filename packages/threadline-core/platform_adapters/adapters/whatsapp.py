"""
WhatsApp Cloud API adapter.

Meta calls a single webhook for every business phone number. The project
is found through ``metadata.phone_number_id`` in the payload, and the
request is authenticated with that project's app secret
(``X-Hub-Signature-256``: HMAC-SHA256 of the raw body).
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import mimetypes
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

SIGNATURE_HEADER = "X-Hub-Signature-256"


def _changes(payload: dict[str, Any]):
    for entry in payload.get("entry") or []:
        for change in entry.get("changes") or []:
            value = change.get("value")
            if isinstance(value, dict):
                yield value


def extract_phone_number_id(payload: dict[str, Any]) -> str | None:
    """Return the business phone number id a webhook payload is addressed to."""
    for value in _changes(payload):
        phone_number_id = (value.get("metadata") or {}).get("phone_number_id")
        if phone_number_id:
            return str(phone_number_id)
    return None


def sign_body(body: bytes, app_secret: str) -> str:
    digest = hmac.new(app_secret.encode(), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


class WhatsAppAdapter(BasePlatformAdapter):
    """Adapter for the WhatsApp Cloud API, one business number per project."""

    platform = Platform.WHATSAPP
    accepts_bare_connect = True
    connect_hint = "Send 'connect <project id>' to connect."

    @classmethod
    def verify_subscription(cls, params) -> str | None:
        """
        Answer Meta's webhook verification handshake.

        Returns:
            The challenge to echo back, or None if the verify token matches
            no project
        """
        mode = params.get("hub.mode")
        token = params.get("hub.verify_token")
        if mode != "subscribe" or not token:
            return None
        if not Project.objects.filter(whatsapp_verify_token=token).exists():
            return None
        return params.get("hub.challenge") or ""

    @classmethod
    def authenticate(cls, request: HttpRequest) -> WebhookAuthResult:
        body = request.body
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return WebhookAuthResult.ignore("invalid_payload")

        if not isinstance(payload, dict) or payload.get("object") != "whatsapp_business_account":
            return WebhookAuthResult.ignore("not_whatsapp")

        phone_number_id = extract_phone_number_id(payload)
        project = None
        if phone_number_id:
            project = Project.objects.filter(whatsapp_phone_number_id=phone_number_id).first()
        if project is None:
            return WebhookAuthResult.ignore("unknown_project")

        signature = request.headers.get(SIGNATURE_HEADER)
        if not signature:
            return WebhookAuthResult.reject("missing_signature")
        if not project.whatsapp_app_secret:
            return WebhookAuthResult.reject("app_secret_not_configured")

        expected = sign_body(body, project.whatsapp_app_secret)
        if not hmac.compare_digest(expected, signature.strip().lower()):
            return WebhookAuthResult.reject("bad_signature")

        return WebhookAuthResult.accept(project)

    def parse_inbound(self, payload: dict[str, Any]) -> list[InboundMessage]:
        messages = []
        for value in _changes(payload):
            phone_number_id = str((value.get("metadata") or {}).get("phone_number_id") or "")
            if phone_number_id != self.project.whatsapp_phone_number_id:
                continue

            names = {
                contact.get("wa_id"): (contact.get("profile") or {}).get("name")
                for contact in value.get("contacts") or []
            }

            for message in value.get("messages") or []:
                inbound = self._parse_message(message, names)
                if inbound is not None:
                    messages.append(inbound)
        return messages

    def _parse_message(self, message: dict[str, Any], names: dict) -> InboundMessage | None:
        sender = message.get("from")
        if not sender:
            return None

        message_type = message.get("type")
        text = ""
        media = None

        if message_type == "text":
            text = (message.get("text") or {}).get("body") or ""
        elif message_type in ("image", "document"):
            body = message.get(message_type) or {}
            if not body.get("id"):
                return None
            text = body.get("caption") or ""
            mime_type = body.get("mime_type") or "application/octet-stream"
            file_name = body.get("filename")
            if not file_name:
                extension = mimetypes.guess_extension(mime_type.split(";")[0].strip()) or ""
                file_name = f"{message_type}_{body['id']}{extension}"
            media = MediaReference(
                kind=message_type,
                file_id=body["id"],
                file_name=file_name,
                mime_type=mime_type,
            )
        else:
            logger.debug(f"Ignoring WhatsApp {message_type} message {message.get('id')}")
            return None

        if not text and media is None:
            return None

        metadata = {}
        if names.get(sender):
            metadata["name"] = names[sender]

        return InboundMessage(
            external_user_id=str(sender),
            text=text,
            message_id=str(message.get("id", "")),
            media=media,
            metadata=metadata,
        )

    def send_message(self, external_user_id: str, text: str) -> SendMessageResult:
        if not (self.project.whatsapp_phone_number_id and self.project.whatsapp_access_token):
            logger.error(f"WhatsApp credentials not configured for project {self.project.id}")
            return SendMessageResult(success=False, error_message="WhatsApp credentials not configured")

        base = self.api_base("WHATSAPP_API_BASE", "https://graph.facebook.com/v18.0")
        result = self._post(
            f"{base}/{self.project.whatsapp_phone_number_id}/messages",
            {
                "messaging_product": "whatsapp",
                "recipient_type": "individual",
                "to": external_user_id,
                "type": "text",
                "text": {"body": text},
            },
            headers=self._auth_headers(),
        )
        if result.success:
            sent = result.response_data.get("messages") or [{}]
            result.external_id = str(sent[0].get("id", ""))
        return result

    def resolve_media_download(self, media: MediaReference) -> MediaDownload:
        if not self.project.whatsapp_access_token:
            raise MediaDownloadError("WhatsApp access token not configured")

        base = self.api_base("WHATSAPP_API_BASE", "https://graph.facebook.com/v18.0")
        try:
            response = requests.get(f"{base}/{media.file_id}", headers=self._auth_headers(), timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            info = response.json()
        except (requests.RequestException, ValueError) as e:
            raise MediaDownloadError(f"Failed to fetch WhatsApp media info: {e}") from e

        if not info.get("url"):
            raise MediaDownloadError("WhatsApp media url missing")

        # The media URL itself also requires the access token
        return MediaDownload(
            url=info["url"],
            headers=self._auth_headers(),
            mime_type=info.get("mime_type") or media.mime_type,
            size=info.get("file_size") or media.size,
        )

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.project.whatsapp_access_token}"}
