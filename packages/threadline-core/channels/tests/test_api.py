"""Tests for the channel and pairing API endpoints."""

import json
from unittest.mock import patch

import pytest
from django.test import Client

from channels.models import Channel, PairingRequest, PairingStatus, Platform
from channels.pairing import request_pairing
from channels.services import get_or_create_channel


@pytest.fixture
def client(user):
    client = Client()
    client.force_login(user)
    return client


def post_json(client, path, payload=None):
    return client.post(path, data=json.dumps(payload or {}), content_type="application/json")


@pytest.mark.django_db
class TestChannelEndpoints:
    def test_list_channels(self, client, project):
        get_or_create_channel(Platform.TELEGRAM, "4242", project)

        response = client.get(f"/api/messaging/projects/{project.id}/channels")

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["channels"][0]["external_user_id"] == "4242"

    def test_list_channels_requires_membership(self, project, outsider):
        client = Client()
        client.force_login(outsider)

        response = client.get(f"/api/messaging/projects/{project.id}/channels")

        assert response.status_code == 404

    def test_disconnect(self, client, project):
        created = get_or_create_channel(Platform.TELEGRAM, "4242", project)

        response = post_json(
            client,
            f"/api/messaging/projects/{project.id}/channels/disconnect",
            {"channel_id": created.channel_id},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert Channel.objects.get(id=created.channel_id).is_active is False

    def test_connect_links(self, client, project):
        response = client.get(f"/api/messaging/projects/{project.id}/connect-links")

        assert response.status_code == 200
        body = response.json()
        assert body["telegram_url"] == f"https://t.me/test_bot?start={project.id}"
        assert body["whatsapp_url"] == f"https://wa.me/15550001111?text=connect%20{project.id}"


@pytest.mark.django_db
class TestPairingEndpoints:
    def test_redeem(self, client, project, user):
        pending = request_pairing(project, Platform.TELEGRAM, "4242")

        with patch("platform_adapters.tasks.queue_pairing_approval"):
            response = post_json(client, "/api/messaging/pairing/redeem", {"code": pending.code})

        assert response.status_code == 200
        assert response.json()["bound_user_id"] == user.id

    def test_redeem_requires_login(self, project):
        pending = request_pairing(project, Platform.TELEGRAM, "4242")

        response = post_json(Client(), "/api/messaging/pairing/redeem", {"code": pending.code})

        assert response.status_code == 401

    def test_redeem_by_non_member_looks_like_unknown_code(self, project, outsider):
        pending = request_pairing(project, Platform.TELEGRAM, "4242")
        client = Client()
        client.force_login(outsider)

        response = post_json(client, "/api/messaging/pairing/redeem", {"code": pending.code})
        unknown = post_json(client, "/api/messaging/pairing/redeem", {"code": "ZZZZZZZZ"})

        assert response.status_code == 404
        assert response.content == unknown.content
        assert PairingRequest.objects.get(id=pending.request_id).status == PairingStatus.PENDING

    def test_redeem_unknown_code(self, client, project):
        response = post_json(client, "/api/messaging/pairing/redeem", {"code": "ZZZZZZZZ"})

        assert response.status_code == 404

    def test_list_and_reject(self, client, project):
        pending = request_pairing(project, Platform.WHATSAPP, "15550002222")

        listed = client.get(f"/api/messaging/projects/{project.id}/pairing-requests").json()
        assert [r["id"] for r in listed["requests"]] == [pending.request_id]

        response = post_json(client, f"/api/messaging/pairing-requests/{pending.request_id}/reject")
        assert response.status_code == 200
        assert response.json()["status"] == PairingStatus.REJECTED

        again = post_json(client, f"/api/messaging/pairing-requests/{pending.request_id}/reject")
        assert again.status_code == 400
