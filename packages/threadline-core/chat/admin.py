from django.contrib import admin

from .models import Conversation, Message, StreamDelta, ThreadMapping


class MessageInline(admin.TabularInline):
    """Inline admin for viewing messages within a conversation."""
    model = Message
    extra = 0
    fields = ['order', 'role', 'status', 'origin', 'content_preview', 'created_at']
    readonly_fields = ['order', 'role', 'status', 'origin', 'content_preview', 'created_at']
    can_delete = False

    def content_preview(self, obj):
        """Show preview of message content."""
        if len(obj.content) > 100:
            return obj.content[:100] + '...'
        return obj.content
    content_preview.short_description = "Content"


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    """Admin interface for engine threads."""

    list_display = ['native_id', 'title', 'project', 'organization', 'created_by', 'aborted_at', 'updated_at']
    list_filter = ['organization', 'created_at']
    search_fields = ['native_id', 'title', 'project__name', 'created_by__username']
    readonly_fields = ['native_id', 'created_at', 'updated_at']
    raw_id_fields = ['organization', 'project', 'created_by']
    inlines = [MessageInline]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ['id', 'conversation', 'order', 'role', 'status', 'origin', 'created_at']
    list_filter = ['role', 'status', 'origin']
    search_fields = ['content', 'conversation__native_id']
    readonly_fields = ['generation_started_at', 'finished_at', 'created_at']
    raw_id_fields = ['conversation', 'reply_to']


@admin.register(StreamDelta)
class StreamDeltaAdmin(admin.ModelAdmin):
    list_display = ['message', 'seq', 'created_at']
    raw_id_fields = ['message']


@admin.register(ThreadMapping)
class ThreadMappingAdmin(admin.ModelAdmin):
    """Mappings are append-only; the admin is read-only."""
    list_display = ['legacy_id', 'conversation', 'created_at']
    search_fields = ['legacy_id', 'conversation__native_id']
    readonly_fields = ['legacy_id', 'conversation', 'created_at']

    def has_change_permission(self, request, obj=None):
        return False
