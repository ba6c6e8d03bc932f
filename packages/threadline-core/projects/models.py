import secrets

from django.contrib.auth import get_user_model
from django.db import models
from django.utils.text import slugify

from accounts.managers import OrganizationScopedQuerySet

User = get_user_model()


def generate_telegram_webhook_secret() -> str:
    """Generate a Telegram-compatible secret token (A-Z, a-z, 0-9, _ and -)."""
    return secrets.token_urlsafe(32)


class Project(models.Model):
    """
    Team-scoped project.

    Each project owns one continuously-growing assistant conversation and may
    expose it through its own Telegram bot and WhatsApp business number.
    Project CRUD lives elsewhere; this model only carries what the messaging
    layer needs.
    """

    # Team relationship (required for multi-tenancy)
    organization = models.ForeignKey(
        'organizations.Organization',
        on_delete=models.CASCADE,
        related_name='projects',
        help_text="The team that owns this project"
    )

    name = models.CharField(
        max_length=255,
        help_text="Project name"
    )
    slug = models.SlugField(
        max_length=100,
        blank=True,
        help_text="URL-friendly slug, auto-generated from name"
    )
    description = models.TextField(
        blank=True,
        help_text="Project description"
    )

    # Telegram bot configuration (each project can have its own bot)
    telegram_bot_username = models.CharField(
        max_length=255,
        blank=True,
        help_text="Telegram bot username (without @)"
    )
    telegram_bot_token = models.CharField(
        max_length=255,
        blank=True,
        help_text="Telegram bot token from @BotFather"
    )
    telegram_webhook_secret = models.CharField(
        max_length=128,
        blank=True,
        null=True,
        unique=True,
        help_text="Secret token Telegram sends with every webhook for this bot"
    )

    # WhatsApp Cloud API configuration
    whatsapp_number = models.CharField(
        max_length=32,
        blank=True,
        help_text="WhatsApp business display number"
    )
    whatsapp_phone_number_id = models.CharField(
        max_length=64,
        blank=True,
        null=True,
        unique=True,
        help_text="WhatsApp Cloud API phone number ID (routes inbound webhooks)"
    )
    whatsapp_access_token = models.CharField(
        max_length=512,
        blank=True,
        help_text="WhatsApp Cloud API access token"
    )
    whatsapp_app_secret = models.CharField(
        max_length=255,
        blank=True,
        help_text="Meta app secret used to sign webhook payloads"
    )
    whatsapp_verify_token = models.CharField(
        max_length=255,
        blank=True,
        null=True,
        unique=True,
        help_text="Token echoed during the webhook verification handshake"
    )

    # Metadata
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name='created_projects',
        help_text="Project owner; inbound platform messages act on their behalf"
    )

    objects = OrganizationScopedQuerySet.as_manager()

    class Meta:
        verbose_name = "Project"
        verbose_name_plural = "Projects"
        ordering = ['-created_at']
        unique_together = [
            ['organization', 'slug'],
        ]

    def __str__(self):
        return f"{self.name} ({self.organization.name})"

    def save(self, *args, **kwargs):
        """Auto-generate slug from name if not set."""
        if not self.slug:
            base_slug = slugify(self.name)[:90] or "project"
            slug = base_slug
            counter = 1
            while Project.objects.filter(
                organization=self.organization,
                slug=slug
            ).exclude(pk=self.pk).exists():
                slug = f"{base_slug}-{counter}"
                counter += 1
            self.slug = slug
        if self.telegram_bot_token and not self.telegram_webhook_secret:
            self.telegram_webhook_secret = generate_telegram_webhook_secret()
        super().save(*args, **kwargs)

    @property
    def team_id(self):
        return self.organization_id

    @property
    def has_telegram(self) -> bool:
        return bool(self.telegram_bot_token)

    @property
    def has_whatsapp(self) -> bool:
        return bool(self.whatsapp_phone_number_id and self.whatsapp_access_token)
