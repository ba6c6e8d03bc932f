"""
Channel registry.

Maps a platform identity plus a project to one durable Channel row. The
(platform, external_user_id, project) triple is unique in the database, so
near-simultaneous first-contact webhooks cannot create duplicates: the
losing insert falls back to the row that won.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from django.utils import timezone

from .models import Channel

logger = logging.getLogger(__name__)


@dataclass
class ChannelResult:
    """Outcome of a registry lookup-or-create."""

    channel_id: int
    thread_id: Optional[str]
    is_new: bool
    channel: Channel


def get_or_create_channel(
    platform: str,
    external_user_id: str,
    project,
    *,
    bound_user=None,
    metadata: Optional[dict] = None,
) -> ChannelResult:
    """
    Look up the channel for an identity in a project, creating it if needed.

    An existing channel is refreshed: its activity time is bumped, it is
    reactivated, its metadata is replaced when new metadata is given (last
    write wins) and its bound user is filled in only if none is set yet.

    Args:
        platform: Platform value (see channels.models.Platform)
        external_user_id: Platform user identity
        project: Project the identity talks to
        bound_user: Internal user to bind, if known
        metadata: Latest platform profile data (names, usernames)

    Returns:
        ChannelResult with is_new=True only for the call that inserted the row
    """
    external_user_id = str(external_user_id)
    now = timezone.now()

    # get_or_create retries the lookup when a concurrent insert wins the
    # unique constraint
    channel, created = Channel.objects.get_or_create(
        platform=platform,
        external_user_id=external_user_id,
        project=project,
        defaults={
            "organization_id": project.organization_id,
            "bound_user": bound_user,
            "metadata": metadata or {},
            "is_active": True,
            "last_message_at": now,
        },
    )

    if created:
        logger.info(
            f"Created {platform} channel {channel.id} for {external_user_id} in project {project.id}"
        )
        return ChannelResult(channel_id=channel.id, thread_id=channel.thread_id or None, is_new=True, channel=channel)

    updates = {"last_message_at": now, "is_active": True, "updated_at": now}
    if metadata is not None:
        updates["metadata"] = metadata
    Channel.objects.filter(pk=channel.pk).update(**updates)

    if bound_user is not None:
        Channel.objects.filter(pk=channel.pk, bound_user__isnull=True).update(bound_user=bound_user)

    channel.refresh_from_db()
    return ChannelResult(channel_id=channel.id, thread_id=channel.thread_id or None, is_new=False, channel=channel)


def list_channels_for_project(project, *, active_only: bool = False):
    """List channels of a project, most recently active first."""
    channels = Channel.objects.for_project(project).select_related("bound_user")
    if active_only:
        channels = channels.filter(is_active=True)
    return channels


def get_channel_for_external_id(
    platform: str,
    external_user_id: str,
    *,
    project=None,
    active_only: bool = True,
) -> Optional[Channel]:
    """
    Find the channel for a platform identity.

    Without a project, the most recently active channel across projects is
    returned.
    """
    channels = Channel.objects.filter(platform=platform, external_user_id=str(external_user_id))
    if project is not None:
        channels = channels.filter(project=project)
    if active_only:
        channels = channels.filter(is_active=True)
    return channels.select_related("project").order_by("-last_message_at", "-created_at").first()


def get_active_channel_for_user(user, *, platform: Optional[str] = None, project=None) -> Optional[Channel]:
    """Return the single active channel bound to a user, if any."""
    if user is None or not user.is_authenticated:
        return None
    channels = Channel.objects.filter(bound_user=user, is_active=True)
    if platform is not None:
        channels = channels.filter(platform=platform)
    if project is not None:
        channels = channels.filter(project=project)
    return channels.order_by("-last_message_at", "-created_at").first()


def update_channel_thread(channel_id: int, thread_id: str) -> bool:
    """Record the thread a channel posts into."""
    updated = Channel.objects.filter(pk=channel_id).update(thread_id=thread_id, updated_at=timezone.now())
    return bool(updated)


def deactivate_channel(channel_id: int) -> bool:
    """
    Deactivate a channel; rows are never deleted.

    Returns:
        True if an active channel was deactivated
    """
    updated = Channel.objects.filter(pk=channel_id, is_active=True).update(
        is_active=False, updated_at=timezone.now()
    )
    if updated:
        logger.info(f"Deactivated channel {channel_id}")
    return bool(updated)
