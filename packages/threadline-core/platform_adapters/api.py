"""
Webhook endpoints for messaging platforms.

Endpoints authenticate the request, parse it and enqueue the work; they
always answer quickly and never reveal whether a project exists. Platforms
retry on anything but 2xx, so requests that can never succeed (unknown
project, unparseable payload) are acknowledged and dropped.
"""

from __future__ import annotations

import json
import logging

from django.http import HttpRequest, HttpResponse
from ninja import Router

from .adapters import BasePlatformAdapter, TelegramAdapter, WhatsAppAdapter
from .adapters.base import AuthOutcome, WebhookAuthResult
from .tasks import queue_inbound_message

logger = logging.getLogger(__name__)

router = Router()


def _ok() -> HttpResponse:
    return HttpResponse("OK", status=200, content_type="text/plain")


def _unauthorized() -> HttpResponse:
    # Identical for every rejection reason
    return HttpResponse("Unauthorized", status=401, content_type="text/plain")


def _refuse(platform: str, auth: WebhookAuthResult) -> HttpResponse:
    logger.warning(
        f"{platform} webhook {auth.outcome.value}: {auth.reason}",
        extra={"webhook_outcome": auth.outcome.value, "reason": auth.reason, "platform": platform},
    )
    if auth.outcome == AuthOutcome.REJECTED:
        return _unauthorized()
    return _ok()


def _enqueue(adapter: BasePlatformAdapter, request: HttpRequest) -> int:
    """Parse an authenticated webhook and queue each message it carries."""
    try:
        payload = json.loads(request.body)
        messages = adapter.parse_inbound(payload)
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        logger.warning(
            f"Unparseable {adapter.platform} webhook for project {adapter.project.id}: {e}",
            extra={"webhook_outcome": "invalid_payload", "platform": adapter.platform},
        )
        return 0

    for inbound in messages:
        queue_inbound_message(adapter.project.id, adapter.platform, inbound.to_dict())

    logger.info(
        f"Accepted {adapter.platform} webhook for project {adapter.project.id} ({len(messages)} messages)",
        extra={"webhook_outcome": "accepted", "platform": adapter.platform},
    )
    return len(messages)


@router.post("/telegram", tags=["webhooks"], auth=None)  # secret-token auth
def telegram_webhook(request: HttpRequest):
    """Receive a Telegram bot update."""
    auth = TelegramAdapter.authenticate(request)
    if not auth.is_valid:
        return _refuse(TelegramAdapter.platform, auth)

    _enqueue(TelegramAdapter(auth.project), request)
    return _ok()


@router.get("/whatsapp", tags=["webhooks"], auth=None)
def whatsapp_verify(request: HttpRequest):
    """Answer the WhatsApp webhook verification handshake."""
    challenge = WhatsAppAdapter.verify_subscription(request.GET)
    if challenge is None:
        logger.warning(
            "WhatsApp webhook verification failed",
            extra={"webhook_outcome": "verification_failed", "platform": WhatsAppAdapter.platform},
        )
        return HttpResponse("Forbidden", status=403, content_type="text/plain")

    logger.info("WhatsApp webhook verified")
    return HttpResponse(challenge, status=200, content_type="text/plain")


@router.post("/whatsapp", tags=["webhooks"], auth=None)  # signature auth
def whatsapp_webhook(request: HttpRequest):
    """Receive a WhatsApp Cloud API notification."""
    auth = WhatsAppAdapter.authenticate(request)
    if not auth.is_valid:
        return _refuse(WhatsAppAdapter.platform, auth)

    _enqueue(WhatsAppAdapter(auth.project), request)
    return _ok()
