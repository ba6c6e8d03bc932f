"""Tests for the channel registry."""

import pytest

from channels.models import Channel, Platform
from channels.services import (
    deactivate_channel,
    get_active_channel_for_user,
    get_channel_for_external_id,
    get_or_create_channel,
    list_channels_for_project,
    update_channel_thread,
)


@pytest.mark.django_db
class TestGetOrCreateChannel:
    """Tests for get_or_create_channel."""

    def test_creates_channel_on_first_contact(self, project):
        result = get_or_create_channel(Platform.TELEGRAM, 4242, project, metadata={"username": "ada"})

        assert result.is_new is True
        assert result.thread_id is None
        channel = Channel.objects.get(id=result.channel_id)
        assert channel.external_user_id == "4242"
        assert channel.organization_id == project.organization_id
        assert channel.metadata == {"username": "ada"}
        assert channel.is_active is True
        assert channel.last_message_at is not None

    def test_second_call_returns_same_channel(self, project):
        first = get_or_create_channel(Platform.TELEGRAM, "4242", project)
        second = get_or_create_channel(Platform.TELEGRAM, "4242", project)

        assert second.is_new is False
        assert second.channel_id == first.channel_id
        assert Channel.objects.count() == 1

    def test_same_identity_in_other_platform_is_separate(self, project):
        telegram = get_or_create_channel(Platform.TELEGRAM, "15550002222", project)
        whatsapp = get_or_create_channel(Platform.WHATSAPP, "15550002222", project)

        assert telegram.channel_id != whatsapp.channel_id

    def test_existing_channel_is_reactivated_and_metadata_replaced(self, project):
        first = get_or_create_channel(Platform.WHATSAPP, "15550002222", project, metadata={"name": "Old"})
        deactivate_channel(first.channel_id)

        result = get_or_create_channel(Platform.WHATSAPP, "15550002222", project, metadata={"name": "New"})

        assert result.channel.is_active is True
        assert result.channel.metadata == {"name": "New"}

    def test_metadata_kept_when_not_given(self, project):
        get_or_create_channel(Platform.WHATSAPP, "15550002222", project, metadata={"name": "Ada"})

        result = get_or_create_channel(Platform.WHATSAPP, "15550002222", project)

        assert result.channel.metadata == {"name": "Ada"}

    def test_bound_user_is_only_backfilled(self, project, user, outsider):
        get_or_create_channel(Platform.TELEGRAM, "4242", project)

        bound = get_or_create_channel(Platform.TELEGRAM, "4242", project, bound_user=user)
        assert bound.channel.bound_user == user

        again = get_or_create_channel(Platform.TELEGRAM, "4242", project, bound_user=outsider)
        assert again.channel.bound_user == user


@pytest.mark.django_db
class TestChannelLookups:
    """Tests for channel lookups and updates."""

    def test_list_channels_filters_inactive(self, project):
        active = get_or_create_channel(Platform.TELEGRAM, "1", project)
        inactive = get_or_create_channel(Platform.TELEGRAM, "2", project)
        deactivate_channel(inactive.channel_id)

        assert list_channels_for_project(project).count() == 2
        assert [c.id for c in list_channels_for_project(project, active_only=True)] == [active.channel_id]

    def test_get_channel_for_external_id(self, project):
        created = get_or_create_channel(Platform.TELEGRAM, "77", project)

        assert get_channel_for_external_id(Platform.TELEGRAM, 77).id == created.channel_id
        assert get_channel_for_external_id(Platform.WHATSAPP, "77") is None

        deactivate_channel(created.channel_id)
        assert get_channel_for_external_id(Platform.TELEGRAM, "77") is None
        assert get_channel_for_external_id(Platform.TELEGRAM, "77", active_only=False).id == created.channel_id

    def test_get_active_channel_for_user(self, project, user):
        created = get_or_create_channel(Platform.WHATSAPP, "15550002222", project, bound_user=user)

        assert get_active_channel_for_user(user).id == created.channel_id
        assert get_active_channel_for_user(user, platform=Platform.TELEGRAM) is None

    def test_update_channel_thread(self, project):
        created = get_or_create_channel(Platform.TELEGRAM, "77", project)

        assert update_channel_thread(created.channel_id, "thread-1-1") is True
        assert Channel.objects.get(id=created.channel_id).thread_id == "thread-1-1"

    def test_deactivate_is_idempotent(self, project):
        created = get_or_create_channel(Platform.TELEGRAM, "77", project)

        assert deactivate_channel(created.channel_id) is True
        assert deactivate_channel(created.channel_id) is False
        assert Channel.objects.filter(id=created.channel_id).exists()
