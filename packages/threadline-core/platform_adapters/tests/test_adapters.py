"""Tests for the Telegram and WhatsApp adapters."""

import json
from unittest.mock import MagicMock, patch

import pytest
import requests
from django.test import RequestFactory

from platform_adapters.adapters import TelegramAdapter, WhatsAppAdapter, get_adapter
from platform_adapters.adapters.base import AuthOutcome, InboundMessage, MediaReference
from platform_adapters.adapters.whatsapp import sign_body
from platform_adapters.exceptions import MediaDownloadError


@pytest.fixture
def request_factory():
    return RequestFactory()


def json_response(data):
    response = MagicMock()
    response.content = json.dumps(data).encode()
    response.json.return_value = data
    return response


def whatsapp_payload(messages, phone_number_id="1098765", contacts=None):
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "entry-1",
                "changes": [
                    {
                        "field": "messages",
                        "value": {
                            "messaging_product": "whatsapp",
                            "metadata": {"display_phone_number": "15550001111", "phone_number_id": phone_number_id},
                            "contacts": contacts or [{"wa_id": "15550002222", "profile": {"name": "Ada"}}],
                            "messages": messages,
                        },
                    }
                ],
            }
        ],
    }


def text_message(body, sender="15550002222"):
    return {"from": sender, "id": "wamid.1", "timestamp": "1700000000", "type": "text", "text": {"body": body}}


@pytest.mark.django_db
class TestTelegramAdapter:
    """Tests for TelegramAdapter."""

    def test_authenticate_missing_secret(self, request_factory, project):
        request = request_factory.post("/api/webhooks/telegram", data="{}", content_type="application/json")

        auth = TelegramAdapter.authenticate(request)

        assert auth.outcome == AuthOutcome.REJECTED
        assert auth.project is None

    def test_authenticate_unknown_secret(self, request_factory, project):
        request = request_factory.post(
            "/api/webhooks/telegram",
            data="{}",
            content_type="application/json",
            HTTP_X_TELEGRAM_BOT_API_SECRET_TOKEN="no-such-secret",
        )

        auth = TelegramAdapter.authenticate(request)

        assert auth.outcome == AuthOutcome.IGNORED
        assert auth.reason == "unknown_secret"

    def test_authenticate_known_secret(self, request_factory, project):
        request = request_factory.post(
            "/api/webhooks/telegram",
            data="{}",
            content_type="application/json",
            HTTP_X_TELEGRAM_BOT_API_SECRET_TOKEN="tg-secret-abc",
        )

        auth = TelegramAdapter.authenticate(request)

        assert auth.is_valid
        assert auth.project == project

    def test_parse_text(self, project):
        payload = {
            "update_id": 1,
            "message": {
                "message_id": 7,
                "chat": {"id": 4242},
                "from": {"first_name": "Ada", "username": "ada"},
                "text": "Hello",
            },
        }

        [inbound] = TelegramAdapter(project).parse_inbound(payload)

        assert inbound.external_user_id == "4242"
        assert inbound.text == "Hello"
        assert inbound.message_id == "7"
        assert inbound.media is None
        assert inbound.metadata == {"first_name": "Ada", "username": "ada"}

    def test_parse_largest_photo_with_caption(self, project):
        payload = {
            "message": {
                "message_id": 8,
                "chat": {"id": 4242},
                "caption": "Look",
                "photo": [
                    {"file_id": "small", "file_size": 100},
                    {"file_id": "large", "file_size": 9000},
                ],
            }
        }

        [inbound] = TelegramAdapter(project).parse_inbound(payload)

        assert inbound.text == "Look"
        assert inbound.media == MediaReference(
            kind="photo", file_id="large", file_name="photo_8.jpg", mime_type="image/jpeg", size=9000
        )

    def test_parse_document(self, project):
        payload = {
            "message": {
                "message_id": 9,
                "chat": {"id": 4242},
                "document": {"file_id": "doc", "file_name": "plan.pdf", "mime_type": "application/pdf"},
            }
        }

        [inbound] = TelegramAdapter(project).parse_inbound(payload)

        assert inbound.text == ""
        assert inbound.media.file_name == "plan.pdf"
        assert inbound.media.mime_type == "application/pdf"

    def test_parse_ignores_updates_without_content(self, project):
        adapter = TelegramAdapter(project)

        assert adapter.parse_inbound({"update_id": 1}) == []
        assert adapter.parse_inbound({"message": {"message_id": 1, "chat": {"id": 1}, "sticker": {}}}) == []

    def test_inbound_message_round_trips_through_dict(self, project):
        payload = {"message": {"message_id": 8, "chat": {"id": 1}, "photo": [{"file_id": "p"}]}}
        [inbound] = TelegramAdapter(project).parse_inbound(payload)

        assert InboundMessage.from_dict(inbound.to_dict()) == inbound

    def test_send_message_uses_markdown(self, project):
        with patch("platform_adapters.adapters.base.requests.post") as post:
            post.return_value = json_response({"ok": True, "result": {"message_id": 55}})
            result = TelegramAdapter(project).send_message("4242", "*Hi*")

        assert result.success
        assert result.external_id == "55"
        url = post.call_args.args[0]
        assert url == "https://api.telegram.org/bot123456:TEST-TOKEN/sendMessage"
        assert post.call_args.kwargs["json"] == {"chat_id": "4242", "text": "*Hi*", "parse_mode": "Markdown"}
        assert post.call_args.kwargs["timeout"] == 30

    def test_send_message_retries_without_markdown(self, project):
        rejected = json_response({"ok": False})
        rejected.raise_for_status.side_effect = requests.HTTPError("400 Bad Request")
        accepted = json_response({"ok": True, "result": {"message_id": 56}})

        with patch("platform_adapters.adapters.base.requests.post", side_effect=[rejected, accepted]) as post:
            result = TelegramAdapter(project).send_message("4242", "unbalanced *markdown")

        assert result.success
        assert "parse_mode" not in post.call_args_list[1].kwargs["json"]

    def test_send_message_reports_failure(self, project):
        with patch(
            "platform_adapters.adapters.base.requests.post",
            side_effect=requests.ConnectionError("down"),
        ):
            result = TelegramAdapter(project).send_message("4242", "Hi")

        assert result.success is False
        assert "down" in result.error_message

    def test_resolve_media_download(self, project):
        media = MediaReference(kind="photo", file_id="large", file_name="photo_8.jpg", mime_type="image/jpeg")

        with patch("platform_adapters.adapters.telegram.requests.get") as get:
            get.return_value = json_response({"ok": True, "result": {"file_path": "photos/file_1.jpg"}})
            download = TelegramAdapter(project).resolve_media_download(media)

        assert get.call_args.kwargs["params"] == {"file_id": "large"}
        assert download.url == "https://api.telegram.org/file/bot123456:TEST-TOKEN/photos/file_1.jpg"
        assert download.mime_type == "image/jpeg"

    def test_resolve_media_download_without_path(self, project):
        media = MediaReference(kind="photo", file_id="gone", file_name="photo_8.jpg")

        with patch("platform_adapters.adapters.telegram.requests.get") as get:
            get.return_value = json_response({"ok": True, "result": {}})
            with pytest.raises(MediaDownloadError):
                TelegramAdapter(project).resolve_media_download(media)


@pytest.mark.django_db
class TestWhatsAppAdapter:
    """Tests for WhatsAppAdapter."""

    def signed_request(self, request_factory, payload, secret="wa-app-secret", signature=None):
        body = json.dumps(payload).encode()
        extra = {}
        if secret is not None:
            extra["HTTP_X_HUB_SIGNATURE_256"] = signature or sign_body(body, secret)
        return request_factory.post("/api/webhooks/whatsapp", data=body, content_type="application/json", **extra)

    def test_verify_subscription(self, project):
        params = {"hub.mode": "subscribe", "hub.verify_token": "wa-verify-token", "hub.challenge": "1158201444"}

        assert WhatsAppAdapter.verify_subscription(params) == "1158201444"
        assert WhatsAppAdapter.verify_subscription({**params, "hub.verify_token": "wrong"}) is None
        assert WhatsAppAdapter.verify_subscription({**params, "hub.mode": "unsubscribe"}) is None

    def test_authenticate_valid_signature(self, request_factory, project):
        request = self.signed_request(request_factory, whatsapp_payload([text_message("Hi")]))

        auth = WhatsAppAdapter.authenticate(request)

        assert auth.is_valid
        assert auth.project == project

    def test_authenticate_missing_signature(self, request_factory, project):
        request = self.signed_request(request_factory, whatsapp_payload([text_message("Hi")]), secret=None)

        assert WhatsAppAdapter.authenticate(request).outcome == AuthOutcome.REJECTED

    def test_authenticate_wrong_signature(self, request_factory, project):
        request = self.signed_request(request_factory, whatsapp_payload([text_message("Hi")]), secret="not-the-secret")

        auth = WhatsAppAdapter.authenticate(request)

        assert auth.outcome == AuthOutcome.REJECTED
        assert auth.reason == "bad_signature"

    def test_authenticate_unknown_phone_number(self, request_factory, project):
        request = self.signed_request(request_factory, whatsapp_payload([text_message("Hi")], phone_number_id="000"))

        auth = WhatsAppAdapter.authenticate(request)

        assert auth.outcome == AuthOutcome.IGNORED
        assert auth.reason == "unknown_project"

    def test_parse_text_with_contact_name(self, project):
        [inbound] = WhatsAppAdapter(project).parse_inbound(whatsapp_payload([text_message("Hello")]))

        assert inbound.external_user_id == "15550002222"
        assert inbound.text == "Hello"
        assert inbound.metadata == {"name": "Ada"}

    def test_parse_image_and_document(self, project):
        messages = [
            {"from": "15550002222", "id": "wamid.2", "type": "image", "image": {"id": "media-1", "mime_type": "image/png", "caption": "Roof"}},
            {"from": "15550002222", "id": "wamid.3", "type": "document", "document": {"id": "media-2", "mime_type": "application/pdf", "filename": "quote.pdf"}},
            {"from": "15550002222", "id": "wamid.4", "type": "sticker", "sticker": {"id": "media-3"}},
        ]

        image, document = WhatsAppAdapter(project).parse_inbound(whatsapp_payload(messages))

        assert image.text == "Roof"
        assert image.media.kind == "image"
        assert image.media.file_name == "image_media-1.png"
        assert document.media.file_name == "quote.pdf"

    def test_parse_skips_other_phone_numbers(self, project):
        payload = whatsapp_payload([text_message("Hi")], phone_number_id="000")

        assert WhatsAppAdapter(project).parse_inbound(payload) == []

    def test_send_message(self, project):
        with patch("platform_adapters.adapters.base.requests.post") as post:
            post.return_value = json_response({"messages": [{"id": "wamid.out"}]})
            result = get_adapter("whatsapp", project).send_message("15550002222", "Hi there")

        assert result.external_id == "wamid.out"
        assert post.call_args.args[0] == "https://graph.facebook.com/v18.0/1098765/messages"
        assert post.call_args.kwargs["headers"] == {"Authorization": "Bearer wa-access-token"}
        assert post.call_args.kwargs["json"]["text"] == {"body": "Hi there"}

    def test_resolve_media_download(self, project):
        media = MediaReference(kind="image", file_id="media-1", file_name="image_media-1.png", mime_type="image/png")

        with patch("platform_adapters.adapters.whatsapp.requests.get") as get:
            get.return_value = json_response(
                {"url": "https://lookaside.fbsbx.com/media-1", "mime_type": "image/png", "file_size": 2048}
            )
            download = WhatsAppAdapter(project).resolve_media_download(media)

        assert get.call_args.args[0] == "https://graph.facebook.com/v18.0/media-1"
        assert download.url == "https://lookaside.fbsbx.com/media-1"
        assert download.headers == {"Authorization": "Bearer wa-access-token"}
        assert download.size == 2048


def test_get_adapter_rejects_unknown_platform():
    with pytest.raises(ValueError):
        get_adapter("sms", None)
