# Generated manually for initial Files models.

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
            name="StoredFile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("storage_key", models.CharField(help_text="Object key in the storage backend", max_length=512, unique=True)),
                ("file_name", models.CharField(max_length=255)),
                ("mime_type", models.CharField(default="application/octet-stream", max_length=255)),
                ("size", models.PositiveBigIntegerField(default=0, help_text="Size in bytes")),
                (
                    "origin",
                    models.CharField(
                        choices=[("web", "Web"), ("telegram", "Telegram"), ("whatsapp", "WhatsApp")],
                        default="web",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stored_files",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "organization",
                    models.ForeignKey(
                        help_text="Team that owns this file",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stored_files",
                        to="organizations.organization",
                    ),
                ),
                (
                    "project",
                    models.ForeignKey(
                        help_text="Project this file belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stored_files",
                        to="projects.project",
                    ),
                ),
            ],
            options={
                "verbose_name": "Stored File",
                "verbose_name_plural": "Stored Files",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["project", "-created_at"], name="files_project_created_idx"),
                ],
            },
        ),
    ]
