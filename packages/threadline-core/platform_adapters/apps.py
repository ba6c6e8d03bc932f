"""Django app configuration for platform_adapters."""

from django.apps import AppConfig


class PlatformAdaptersConfig(AppConfig):
    """Webhooks and outbound messaging for Telegram and WhatsApp."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "platform_adapters"
    verbose_name = "Platform Adapters"
