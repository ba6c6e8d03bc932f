"""Tests for the pairing service."""

from datetime import timedelta
from unittest.mock import patch

import pytest
from django.contrib.auth.models import AnonymousUser
from django.utils import timezone

from channels.models import PAIRING_CODE_ALPHABET, PAIRING_CODE_LENGTH, Channel, PairingRequest, PairingStatus, Platform
from channels.pairing import (
    PairingAlreadyResolvedError,
    PairingAuthError,
    PairingExpiredError,
    PairingNotFoundError,
    list_pending_requests,
    normalize_code,
    redeem_pairing_code,
    reject_pairing_request,
    request_pairing,
)


@pytest.mark.django_db
class TestRequestPairing:
    """Tests for request_pairing."""

    def test_mints_code_from_alphabet(self, project):
        result = request_pairing(project, Platform.TELEGRAM, 4242, metadata={"username": "ada"})

        assert result.created is True
        assert len(result.code) == PAIRING_CODE_LENGTH
        assert set(result.code) <= set(PAIRING_CODE_ALPHABET)
        pairing = PairingRequest.objects.get(id=result.request_id)
        assert pairing.external_user_id == "4242"
        assert pairing.status == PairingStatus.PENDING

    def test_same_code_while_pending(self, project):
        first = request_pairing(project, Platform.TELEGRAM, "4242")
        second = request_pairing(project, Platform.TELEGRAM, "4242")

        assert second.created is False
        assert second.code == first.code
        assert PairingRequest.objects.count() == 1

    def test_expired_request_is_replaced(self, project):
        first = request_pairing(project, Platform.TELEGRAM, "4242")
        PairingRequest.objects.filter(id=first.request_id).update(expires_at=timezone.now() - timedelta(minutes=1))

        second = request_pairing(project, Platform.TELEGRAM, "4242")

        assert second.created is True
        assert second.request_id != first.request_id
        assert PairingRequest.objects.get(id=first.request_id).status == PairingStatus.EXPIRED

    def test_normalize_code(self):
        assert normalize_code(" ab cd 23\n") == "ABCD23"
        assert normalize_code(None) == ""


@pytest.mark.django_db
class TestRedeemPairingCode:
    """Tests for redeem_pairing_code."""

    def test_redeem_creates_bound_channel(self, project, user):
        pending = request_pairing(project, Platform.WHATSAPP, "15550002222", metadata={"name": "Ada"})

        with patch("platform_adapters.tasks.queue_pairing_approval"):
            channel = redeem_pairing_code(pending.code.lower(), user)

        assert channel.project == project
        assert channel.bound_user == user
        assert channel.metadata == {"name": "Ada"}
        pairing = PairingRequest.objects.get(id=pending.request_id)
        assert pairing.status == PairingStatus.APPROVED
        assert pairing.resolved_by == user

    def test_approval_notification_after_commit(self, project, user, django_capture_on_commit_callbacks):
        pending = request_pairing(project, Platform.TELEGRAM, "4242")

        with patch("platform_adapters.tasks.queue_pairing_approval") as notify:
            with django_capture_on_commit_callbacks(execute=True):
                channel = redeem_pairing_code(pending.code, user)

        notify.assert_called_once_with(channel.id)

    def test_second_redemption_fails(self, project, user):
        pending = request_pairing(project, Platform.TELEGRAM, "4242")
        with patch("platform_adapters.tasks.queue_pairing_approval"):
            redeem_pairing_code(pending.code, user)

            with pytest.raises(PairingAlreadyResolvedError):
                redeem_pairing_code(pending.code, user)

        assert Channel.objects.count() == 1

    def test_non_member_sees_code_as_unknown(self, project, outsider):
        pending = request_pairing(project, Platform.TELEGRAM, "4242")

        with pytest.raises(PairingNotFoundError) as foreign:
            redeem_pairing_code(pending.code, outsider)
        with pytest.raises(PairingNotFoundError) as unknown:
            redeem_pairing_code("ZZZZZZZZ", outsider)

        assert str(foreign.value) == str(unknown.value)

        assert PairingRequest.objects.get(id=pending.request_id).status == PairingStatus.PENDING
        assert not Channel.objects.exists()

    def test_anonymous_user_is_rejected(self, project):
        pending = request_pairing(project, Platform.TELEGRAM, "4242")

        with pytest.raises(PairingAuthError):
            redeem_pairing_code(pending.code, AnonymousUser())

    def test_expired_code_is_rejected(self, project, user):
        pending = request_pairing(project, Platform.TELEGRAM, "4242")
        PairingRequest.objects.filter(id=pending.request_id).update(expires_at=timezone.now() - timedelta(seconds=1))

        with pytest.raises(PairingExpiredError):
            redeem_pairing_code(pending.code, user)

        assert PairingRequest.objects.get(id=pending.request_id).status == PairingStatus.EXPIRED
        assert not Channel.objects.exists()

    def test_unknown_code(self, user):
        with pytest.raises(PairingNotFoundError):
            redeem_pairing_code("ZZZZZZZZ", user)

    def test_reactivates_disconnected_channel(self, project, user):
        with patch("platform_adapters.tasks.queue_pairing_approval"):
            first = redeem_pairing_code(request_pairing(project, Platform.TELEGRAM, "4242").code, user)
            Channel.objects.filter(id=first.id).update(is_active=False)

            second = redeem_pairing_code(request_pairing(project, Platform.TELEGRAM, "4242").code, user)

        assert second.id == first.id
        assert second.is_active is True


@pytest.mark.django_db
class TestRejectPairing:
    """Tests for reject_pairing_request and list_pending_requests."""

    def test_reject_pending(self, project, user):
        pending = request_pairing(project, Platform.TELEGRAM, "4242")

        pairing = reject_pairing_request(pending.request_id, user)

        assert pairing.status == PairingStatus.REJECTED
        assert list(list_pending_requests(project)) == []

        with pytest.raises(PairingAlreadyResolvedError):
            reject_pairing_request(pending.request_id, user)

    def test_outsider_cannot_see_request(self, project, outsider):
        pending = request_pairing(project, Platform.TELEGRAM, "4242")

        with pytest.raises(PairingNotFoundError):
            reject_pairing_request(pending.request_id, outsider)

    def test_list_pending_skips_expired(self, project):
        fresh = request_pairing(project, Platform.TELEGRAM, "1")
        stale = request_pairing(project, Platform.TELEGRAM, "2")
        PairingRequest.objects.filter(id=stale.request_id).update(expires_at=timezone.now() - timedelta(seconds=1))

        assert [p.id for p in list_pending_requests(project)] == [fresh.request_id]
