# Generated manually for initial Chat engine models.

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone

import chat.models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("organizations", "0001_initial"),
        ("projects", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Conversation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "native_id",
                    models.CharField(
                        default=chat.models.mint_native_id,
                        editable=False,
                        help_text="Opaque thread id minted by the engine",
                        max_length=64,
                        unique=True,
                    ),
                ),
                ("title", models.CharField(blank=True, max_length=200)),
                (
                    "aborted_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Abort epoch; generations started at or before this are suppressed",
                        null=True,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        help_text="User on whose behalf the thread was minted",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="conversations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "organization",
                    models.ForeignKey(
                        help_text="Team this conversation belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="conversations",
                        to="organizations.organization",
                    ),
                ),
                (
                    "project",
                    models.ForeignKey(
                        help_text="Project this conversation belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="conversations",
                        to="projects.project",
                    ),
                ),
            ],
            options={
                "ordering": ["-updated_at"],
                "indexes": [
                    models.Index(fields=["project", "-updated_at"], name="chat_conv_project_upd_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Message",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "role",
                    models.CharField(
                        choices=[("user", "User"), ("assistant", "Assistant"), ("system", "System")],
                        max_length=20,
                    ),
                ),
                ("content", models.TextField(blank=True, help_text="Committed message body")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("in_progress", "In Progress"),
                            ("finished", "Finished"),
                            ("aborted", "Aborted"),
                            ("failed", "Failed"),
                        ],
                        default="finished",
                        max_length=20,
                    ),
                ),
                ("order", models.PositiveIntegerField(help_text="Per-conversation creation order")),
                (
                    "origin",
                    models.CharField(
                        choices=[("web", "Web"), ("telegram", "Telegram"), ("whatsapp", "WhatsApp")],
                        default="web",
                        max_length=20,
                    ),
                ),
                ("file_ids", models.JSONField(blank=True, default=list, help_text="Attached StoredFile ids")),
                ("error", models.TextField(blank=True)),
                ("generation_started_at", models.DateTimeField(blank=True, null=True)),
                ("finished_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "conversation",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="messages",
                        to="chat.conversation",
                    ),
                ),
                (
                    "reply_to",
                    models.ForeignKey(
                        blank=True,
                        help_text="User message an assistant message answers",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="replies",
                        to="chat.message",
                    ),
                ),
            ],
            options={
                "ordering": ["order"],
                "constraints": [
                    models.UniqueConstraint(fields=("conversation", "order"), name="chat_message_unique_order"),
                ],
                "indexes": [
                    models.Index(fields=["conversation", "status"], name="chat_msg_conv_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="StreamDelta",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("seq", models.PositiveIntegerField(help_text="Per-message sequence number, from 0")),
                ("text", models.TextField()),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                (
                    "message",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="deltas",
                        to="chat.message",
                    ),
                ),
            ],
            options={
                "ordering": ["message", "seq"],
                "constraints": [
                    models.UniqueConstraint(fields=("message", "seq"), name="chat_delta_unique_seq"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ThreadMapping",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("legacy_id", models.CharField(max_length=255, unique=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "conversation",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="legacy_mapping",
                        to="chat.conversation",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
