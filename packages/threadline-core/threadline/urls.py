"""
URL configuration for threadline.

All HTTP endpoints are served by a single django-ninja API under ``/api/``;
the Django admin lives under ``/admin/``.
"""
from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import path
from ninja import NinjaAPI

from channels.api import router as channels_router
from chat.api import router as chat_router
from files.api import router as files_router
from platform_adapters.api import router as webhooks_router
from threadline.system_api import router as system_router

api = NinjaAPI(title="Threadline API", version="0.1.0")
api.add_router("/", chat_router, tags=["chat"])
api.add_router("/files", files_router, tags=["files"])
api.add_router("/messaging", channels_router, tags=["messaging"])
api.add_router("/webhooks", webhooks_router, tags=["webhooks"])
api.add_router("/system", system_router, tags=["system"])

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", api.urls),
]

# Serve uploaded media in development
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
