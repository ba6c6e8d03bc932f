# Generated manually for initial Channels models.

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("organizations", "0001_initial"),
        ("projects", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Channel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "platform",
                    models.CharField(
                        choices=[("telegram", "Telegram"), ("whatsapp", "WhatsApp")],
                        help_text="Messaging platform",
                        max_length=20,
                    ),
                ),
                (
                    "external_user_id",
                    models.CharField(
                        help_text="Platform user identity (Telegram chat id, WhatsApp phone number)",
                        max_length=255,
                    ),
                ),
                (
                    "thread_id",
                    models.CharField(
                        blank=True,
                        help_text="Thread this channel posts into (legacy or native id)",
                        max_length=255,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("last_message_at", models.DateTimeField(blank=True, null=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "bound_user",
                    models.ForeignKey(
                        blank=True,
                        help_text="Internal user who approved the pairing",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="messaging_channels",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "organization",
                    models.ForeignKey(
                        help_text="Team that owns this channel",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="channels",
                        to="organizations.organization",
                    ),
                ),
                (
                    "project",
                    models.ForeignKey(
                        help_text="Project whose conversation this channel reaches",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="channels",
                        to="projects.project",
                    ),
                ),
            ],
            options={
                "verbose_name": "Channel",
                "verbose_name_plural": "Channels",
                "ordering": ["-last_message_at", "-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("platform", "external_user_id", "project"),
                        name="channels_unique_identity_per_project",
                    ),
                ],
                "indexes": [
                    models.Index(fields=["platform", "external_user_id"], name="channels_platform_ext_idx"),
                    models.Index(fields=["bound_user", "is_active"], name="channels_bound_active_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PairingRequest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("platform", models.CharField(choices=[("telegram", "Telegram"), ("whatsapp", "WhatsApp")], max_length=20)),
                ("external_user_id", models.CharField(max_length=255)),
                ("pairing_code", models.CharField(db_index=True, max_length=8)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("approved", "Approved"),
                            ("rejected", "Rejected"),
                            ("expired", "Expired"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("expires_at", models.DateTimeField()),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                (
                    "project",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="pairing_requests",
                        to="projects.project",
                    ),
                ),
                (
                    "resolved_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="resolved_pairing_requests",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Pairing Request",
                "verbose_name_plural": "Pairing Requests",
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "pending")),
                        fields=("project", "platform", "external_user_id"),
                        name="channels_one_pending_per_identity",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("status", "pending")),
                        fields=("pairing_code",),
                        name="channels_unique_pending_code",
                    ),
                ],
            },
        ),
    ]
