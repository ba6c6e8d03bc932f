"""
Platform adapter implementations.

Each adapter authenticates webhooks, parses inbound messages and sends
outbound messages for one messaging platform.
"""

from channels.models import Platform

from .base import BasePlatformAdapter, InboundMessage, MediaDownload, MediaReference
from .telegram import TelegramAdapter
from .whatsapp import WhatsAppAdapter

ADAPTERS = {
    Platform.TELEGRAM.value: TelegramAdapter,
    Platform.WHATSAPP.value: WhatsAppAdapter,
}


def get_adapter(platform: str, project) -> BasePlatformAdapter:
    """Return the adapter for a platform, bound to a project."""
    try:
        adapter_class = ADAPTERS[str(platform)]
    except KeyError:
        raise ValueError(f"Unsupported platform: {platform}")
    return adapter_class(project)


__all__ = [
    "ADAPTERS",
    "BasePlatformAdapter",
    "InboundMessage",
    "MediaDownload",
    "MediaReference",
    "TelegramAdapter",
    "WhatsAppAdapter",
    "get_adapter",
]
