"""
Database models for the conversation engine.

A Conversation is addressed by its engine-minted ``native_id``. Assistant
replies are produced out-of-band and recorded as ordered StreamDelta rows
before being committed to the Message body, so live subscribers can follow
a reply while it is still being generated.
"""

import uuid

from django.contrib.auth import get_user_model
from django.db import models
from django.utils import timezone

from accounts.managers import OrganizationScopedQuerySet

User = get_user_model()


def mint_native_id() -> str:
    """Mint an opaque engine thread id (32 hex characters)."""
    return uuid.uuid4().hex


class MessageRole(models.TextChoices):
    USER = 'user', 'User'
    ASSISTANT = 'assistant', 'Assistant'
    SYSTEM = 'system', 'System'


class MessageStatus(models.TextChoices):
    """Lifecycle of a message body."""

    IN_PROGRESS = 'in_progress', 'In Progress'
    FINISHED = 'finished', 'Finished'
    ABORTED = 'aborted', 'Aborted'
    FAILED = 'failed', 'Failed'


class MessageOrigin(models.TextChoices):
    """Surface a message entered through."""

    WEB = 'web', 'Web'
    TELEGRAM = 'telegram', 'Telegram'
    WHATSAPP = 'whatsapp', 'WhatsApp'


class Conversation(models.Model):
    """
    A conversation thread owned by the engine.

    ``aborted_at`` is the abort epoch: output of any generation that started
    at or before it is ignored by every consumer, even though the generation
    task itself keeps running to completion.
    """

    native_id = models.CharField(
        max_length=64,
        unique=True,
        default=mint_native_id,
        editable=False,
        help_text="Opaque thread id minted by the engine"
    )
    organization = models.ForeignKey(
        'organizations.Organization',
        on_delete=models.CASCADE,
        related_name='conversations',
        help_text="Team this conversation belongs to"
    )
    project = models.ForeignKey(
        'projects.Project',
        on_delete=models.CASCADE,
        related_name='conversations',
        help_text="Project this conversation belongs to"
    )
    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='conversations',
        help_text="User on whose behalf the thread was minted"
    )
    title = models.CharField(max_length=200, blank=True)
    aborted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Abort epoch; generations started at or before this are suppressed"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OrganizationScopedQuerySet.as_manager()

    class Meta:
        ordering = ['-updated_at']
        indexes = [
            models.Index(fields=['project', '-updated_at'], name='chat_conv_project_upd_idx'),
        ]

    def __str__(self):
        return self.title or f"Conversation {self.native_id}"


class Message(models.Model):
    """
    A single message in a conversation.

    ``order`` is monotonic per conversation and defines creation order.
    For assistant messages ``content`` is only authoritative once the status
    leaves ``in_progress``; until then the body lives in the deltas.
    """

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name='messages',
    )
    role = models.CharField(max_length=20, choices=MessageRole.choices)
    content = models.TextField(blank=True, help_text="Committed message body")
    status = models.CharField(
        max_length=20,
        choices=MessageStatus.choices,
        default=MessageStatus.FINISHED,
    )
    order = models.PositiveIntegerField(help_text="Per-conversation creation order")
    origin = models.CharField(
        max_length=20,
        choices=MessageOrigin.choices,
        default=MessageOrigin.WEB,
    )
    reply_to = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='replies',
        help_text="User message an assistant message answers"
    )
    file_ids = models.JSONField(default=list, blank=True, help_text="Attached StoredFile ids")
    error = models.TextField(blank=True)
    generation_started_at = models.DateTimeField(null=True, blank=True)
    finished_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['order']
        constraints = [
            models.UniqueConstraint(
                fields=['conversation', 'order'],
                name='chat_message_unique_order',
            ),
        ]
        indexes = [
            models.Index(fields=['conversation', 'status'], name='chat_msg_conv_status_idx'),
        ]

    def __str__(self):
        preview = self.content[:50] + ('...' if len(self.content) > 50 else '')
        return f"{self.get_role_display()}: {preview}"


class StreamDelta(models.Model):
    """An incremental fragment of an assistant reply."""

    message = models.ForeignKey(
        Message,
        on_delete=models.CASCADE,
        related_name='deltas',
    )
    seq = models.PositiveIntegerField(help_text="Per-message sequence number, from 0")
    text = models.TextField()
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ['message', 'seq']
        constraints = [
            models.UniqueConstraint(
                fields=['message', 'seq'],
                name='chat_delta_unique_seq',
            ),
        ]

    def __str__(self):
        return f"Delta {self.seq} of message {self.message_id}"


class ThreadMapping(models.Model):
    """
    Append-only translation from a legacy thread id to a native conversation.

    Rows are created lazily the first time a legacy id is used to write.
    """

    legacy_id = models.CharField(max_length=255, unique=True)
    conversation = models.OneToOneField(
        Conversation,
        on_delete=models.CASCADE,
        related_name='legacy_mapping',
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.legacy_id} -> {self.conversation.native_id}"
