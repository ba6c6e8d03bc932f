from django.contrib import admin

from .models import Channel, PairingRequest


@admin.register(Channel)
class ChannelAdmin(admin.ModelAdmin):
    list_display = ("id", "platform", "external_user_id", "project", "bound_user", "is_active", "last_message_at")
    list_filter = ("platform", "is_active", "organization")
    search_fields = ("external_user_id", "thread_id", "project__name")
    readonly_fields = ("created_at", "updated_at")
    raw_id_fields = ("organization", "project", "bound_user")


@admin.register(PairingRequest)
class PairingRequestAdmin(admin.ModelAdmin):
    list_display = ("pairing_code", "platform", "external_user_id", "project", "status", "expires_at", "resolved_by")
    list_filter = ("platform", "status")
    search_fields = ("pairing_code", "external_user_id", "project__name")
    readonly_fields = ("created_at", "resolved_at")
    raw_id_fields = ("project", "resolved_by")
