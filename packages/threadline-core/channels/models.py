"""Channel and pairing models binding external messaging identities to projects."""

from django.contrib.auth import get_user_model
from django.db import models
from django.db.models import Q

from accounts.managers import OrganizationScopedQuerySet

User = get_user_model()

# Characters that cannot be confused with each other when read aloud or
# retyped (no I, O, 0 or 1)
PAIRING_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
PAIRING_CODE_LENGTH = 8


class Platform(models.TextChoices):
    """Supported external messaging platforms."""

    TELEGRAM = "telegram", "Telegram"
    WHATSAPP = "whatsapp", "WhatsApp"


class PairingStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    EXPIRED = "expired", "Expired"


class Channel(models.Model):
    """
    Durable binding between one external messaging identity and one project.

    Channels are deactivated, never deleted, so a returning user keeps the
    same channel row and thread.
    """

    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.CASCADE,
        related_name="channels",
        help_text="Team that owns this channel",
    )
    project = models.ForeignKey(
        "projects.Project",
        on_delete=models.CASCADE,
        related_name="channels",
        help_text="Project whose conversation this channel reaches",
    )
    platform = models.CharField(
        max_length=20,
        choices=Platform.choices,
        help_text="Messaging platform",
    )
    external_user_id = models.CharField(
        max_length=255,
        help_text="Platform user identity (Telegram chat id, WhatsApp phone number)",
    )
    bound_user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="messaging_channels",
        help_text="Internal user who approved the pairing",
    )
    thread_id = models.CharField(
        max_length=255,
        blank=True,
        help_text="Thread this channel posts into (legacy or native id)",
    )
    is_active = models.BooleanField(default=True)
    last_message_at = models.DateTimeField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OrganizationScopedQuerySet.as_manager()

    class Meta:
        verbose_name = "Channel"
        verbose_name_plural = "Channels"
        ordering = ["-last_message_at", "-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["platform", "external_user_id", "project"],
                name="channels_unique_identity_per_project",
            ),
        ]
        indexes = [
            models.Index(fields=["platform", "external_user_id"], name="channels_platform_ext_idx"),
            models.Index(fields=["bound_user", "is_active"], name="channels_bound_active_idx"),
        ]

    def __str__(self):
        return f"{self.platform}:{self.external_user_id} -> project {self.project_id}"


class PairingRequest(models.Model):
    """
    A pending request from an unauthenticated external identity to join a project.

    The external user receives ``pairing_code`` and hands it to a team member,
    who redeems it while signed in. At most one request per identity and per
    code can be pending at a time.
    """

    project = models.ForeignKey(
        "projects.Project",
        on_delete=models.CASCADE,
        related_name="pairing_requests",
    )
    platform = models.CharField(max_length=20, choices=Platform.choices)
    external_user_id = models.CharField(max_length=255)
    pairing_code = models.CharField(max_length=PAIRING_CODE_LENGTH, db_index=True)
    status = models.CharField(
        max_length=20,
        choices=PairingStatus.choices,
        default=PairingStatus.PENDING,
    )
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    expires_at = models.DateTimeField()
    resolved_at = models.DateTimeField(null=True, blank=True)
    resolved_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="resolved_pairing_requests",
    )

    class Meta:
        verbose_name = "Pairing Request"
        verbose_name_plural = "Pairing Requests"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["project", "platform", "external_user_id"],
                condition=Q(status="pending"),
                name="channels_one_pending_per_identity",
            ),
            models.UniqueConstraint(
                fields=["pairing_code"],
                condition=Q(status="pending"),
                name="channels_unique_pending_code",
            ),
        ]

    def __str__(self):
        return f"{self.pairing_code} ({self.platform}:{self.external_user_id}, {self.status})"
