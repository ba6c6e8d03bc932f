# Generated manually for initial Projects models.

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("organizations", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Project",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(help_text="Project name", max_length=255)),
                ("slug", models.SlugField(blank=True, help_text="URL-friendly slug, auto-generated from name", max_length=100)),
                ("description", models.TextField(blank=True, help_text="Project description")),
                ("telegram_bot_username", models.CharField(blank=True, help_text="Telegram bot username (without @)", max_length=255)),
                ("telegram_bot_token", models.CharField(blank=True, help_text="Telegram bot token from @BotFather", max_length=255)),
                (
                    "telegram_webhook_secret",
                    models.CharField(
                        blank=True,
                        help_text="Secret token Telegram sends with every webhook for this bot",
                        max_length=128,
                        null=True,
                        unique=True,
                    ),
                ),
                ("whatsapp_number", models.CharField(blank=True, help_text="WhatsApp business display number", max_length=32)),
                (
                    "whatsapp_phone_number_id",
                    models.CharField(
                        blank=True,
                        help_text="WhatsApp Cloud API phone number ID (routes inbound webhooks)",
                        max_length=64,
                        null=True,
                        unique=True,
                    ),
                ),
                ("whatsapp_access_token", models.CharField(blank=True, help_text="WhatsApp Cloud API access token", max_length=512)),
                ("whatsapp_app_secret", models.CharField(blank=True, help_text="Meta app secret used to sign webhook payloads", max_length=255)),
                (
                    "whatsapp_verify_token",
                    models.CharField(
                        blank=True,
                        help_text="Token echoed during the webhook verification handshake",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        help_text="Project owner; inbound platform messages act on their behalf",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="created_projects",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "organization",
                    models.ForeignKey(
                        help_text="The team that owns this project",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="projects",
                        to="organizations.organization",
                    ),
                ),
            ],
            options={
                "verbose_name": "Project",
                "verbose_name_plural": "Projects",
                "ordering": ["-created_at"],
                "unique_together": {("organization", "slug")},
            },
        ),
    ]
