from django.contrib.auth import get_user_model
from django.db import models

from accounts.managers import OrganizationScopedQuerySet

User = get_user_model()


class FileOrigin(models.TextChoices):
    """Where an uploaded file came from."""

    WEB = 'web', 'Web'
    TELEGRAM = 'telegram', 'Telegram'
    WHATSAPP = 'whatsapp', 'WhatsApp'


class StoredFile(models.Model):
    """
    Registered file record for an object in storage.

    Created after the bytes have been streamed to the storage key; the
    record is what conversation messages reference by id.
    """

    project = models.ForeignKey(
        'projects.Project',
        on_delete=models.CASCADE,
        related_name='stored_files',
        help_text="Project this file belongs to"
    )
    organization = models.ForeignKey(
        'organizations.Organization',
        on_delete=models.CASCADE,
        related_name='stored_files',
        help_text="Team that owns this file"
    )
    storage_key = models.CharField(
        max_length=512,
        unique=True,
        help_text="Object key in the storage backend"
    )
    file_name = models.CharField(max_length=255)
    mime_type = models.CharField(max_length=255, default='application/octet-stream')
    size = models.PositiveBigIntegerField(default=0, help_text="Size in bytes")
    origin = models.CharField(
        max_length=20,
        choices=FileOrigin.choices,
        default=FileOrigin.WEB,
    )
    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='stored_files'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = OrganizationScopedQuerySet.as_manager()

    class Meta:
        verbose_name = "Stored File"
        verbose_name_plural = "Stored Files"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['project', '-created_at'], name='files_project_created_idx'),
        ]

    def __str__(self):
        return f"{self.file_name} ({self.mime_type}, {self.size} bytes)"
