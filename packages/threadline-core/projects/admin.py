from django.contrib import admin
from .models import Project


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    """
    Admin interface for Project messaging configuration.

    Project CRUD is owned by another service; the admin is the only place
    bot tokens and WhatsApp credentials are edited here.
    """
    list_display = [
        'name',
        'organization',
        'telegram_bot_username',
        'whatsapp_number',
        'created_by',
        'created_at'
    ]
    list_filter = ['organization', 'created_at']
    search_fields = ['name', 'description', 'organization__name', 'telegram_bot_username']
    readonly_fields = ['created_at', 'updated_at']
    raw_id_fields = ['organization', 'created_by']

    fieldsets = [
        ('Basic Information', {
            'fields': ['organization', 'name', 'slug', 'description']
        }),
        ('Telegram', {
            'fields': ['telegram_bot_username', 'telegram_bot_token', 'telegram_webhook_secret']
        }),
        ('WhatsApp', {
            'fields': [
                'whatsapp_number',
                'whatsapp_phone_number_id',
                'whatsapp_access_token',
                'whatsapp_app_secret',
                'whatsapp_verify_token',
            ]
        }),
        ('Metadata', {
            'fields': ['created_by', 'created_at', 'updated_at'],
            'classes': ['collapse']
        }),
    ]

    def get_queryset(self, request):
        """Optimize queryset with select_related."""
        qs = super().get_queryset(request)
        return qs.select_related('organization', 'created_by')
